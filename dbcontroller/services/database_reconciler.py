"""
Database reconciler.

Turns the declared state of one Database into actual database, user and
credential state on its backend, and records the outcome in the Database's
status.

Reconciliation pattern for one key:
1. Split the key; malformed keys are dropped
2. Load the Database; a deleted Database is dropped
3. Mark a fresh Database Pending
4. Load the referenced DatabaseServer (same namespace)
5. Pick the plugin from serverType or the server's backend
6. Resolve the superuser DSN
7. Resolve user passwords
8. Sync the database through the plugin
9. Ensure the owned credential Secret
10. Record Success

Every exit maps to a ResultKind; the outcome table decides the status state,
the message and whether the key is requeued. Calls never raise for expected
failures, so a worker only needs ``result.requeue``.
"""
from typing import Any, List, Mapping, Optional

from dbcontroller.config.logging import get_logger
from dbcontroller.core.state_machine import (
    MESSAGE_DATABASE_CREATED,
    MESSAGE_DATABASE_SYNCED,
    OUTCOMES,
    REASON_CREATED,
    REASON_SYNCED,
    Outcome,
    ReconcileResult,
    ResultKind,
)
from dbcontroller.exceptions import (
    DsnParseError,
    InvalidKeyError,
    OwnershipConflictError,
    PluginError,
    PluginNotFoundError,
    SecretSyncError,
    StatusUpdateError,
)
from dbcontroller.models import (
    Database,
    DatabaseServer,
    DatabaseState,
    ResolvedDatabase,
    ResolvedUser,
)
from dbcontroller.plugins import DatabasePlugin, PluginRegistry
from dbcontroller.repositories.object_store import ObjectStore
from dbcontroller.services.dsn_resolver import DsnOutcome, DsnResolver
from dbcontroller.services.event_recorder import EVENT_TYPE_NORMAL, EventRecorder
from dbcontroller.services.metrics import databases_created_total
from dbcontroller.services.secret_sync import SecretSynchronizer
from dbcontroller.services.status_reporter import StatusReporter
from dbcontroller.services.value_source import get_value_from_source
from dbcontroller.utils.namespace import split_meta_namespace_key

logger = get_logger(__name__)


class _Stop(Exception):
    """Ends an attempt early with a finished result."""

    def __init__(self, result: ReconcileResult):
        self.result = result
        super().__init__(result.message)


class DatabaseReconciler:
    """
    Reconciles Database resources one key at a time.

    Features:
    - Idempotent: a synced Database is re-checked without writes or events
    - Tolerates partially applied previous attempts
    - Separates transient failures (requeued) from misconfiguration (not requeued)
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: PluginRegistry,
        recorder: EventRecorder,
        outcomes: Mapping[ResultKind, Outcome] = OUTCOMES,
    ):
        self.store = store
        self.registry = registry
        self.recorder = recorder
        self.outcomes = outcomes
        self.status = StatusReporter(store)
        self.dsn_resolver = DsnResolver(store)
        self.secrets = SecretSynchronizer(store, recorder)

    async def sync_database(self, key: str) -> ReconcileResult:
        """
        Reconcile the Database identified by ``key``.

        Args:
            key: ``namespace/name`` of the Database

        Returns:
            ReconcileResult; ``requeue`` tells the caller to retry the key later
        """
        try:
            namespace, name = split_meta_namespace_key(key)
        except InvalidKeyError as e:
            logger.error("reconcile_invalid_key", key=key, error=e.message)
            return ReconcileResult.drop(key, e.message)

        fetched = await self.store.get_database(namespace, name)
        if fetched.is_not_found:
            logger.info("reconcile_database_gone", database=key)
            return ReconcileResult.drop(key, f"database '{key}' in work queue no longer exists")
        if fetched.is_error:
            return await self._finish(key, None, ResultKind.DATABASE_LOOKUP_FAILED, fetched.error, error=fetched.error)

        try:
            return await self._reconcile(key, fetched.obj)
        except _Stop as stop:
            return stop.result

    async def _reconcile(self, key: str, db: Database) -> ReconcileResult:
        if db.status.state is None:
            db = await self._initialize(key, db)

        server = await self._load_server(key, db)
        plugin = await self._select_plugin(key, db, server)

        resolution = await self.dsn_resolver.resolve(db, server)
        if resolution.outcome is DsnOutcome.NO_SOURCE:
            await self._stop(key, db, ResultKind.NO_DSN_SOURCE)
        elif resolution.outcome is DsnOutcome.NOT_FOUND:
            await self._stop(key, db, ResultKind.WAITING_FOR_DSN, source=resolution.source)
        elif resolution.outcome is DsnOutcome.FAILED:
            await self._stop(
                key, db, ResultKind.INVALID_DSN, resolution.error,
                source=resolution.source, error=resolution.error,
            )
        dsn = resolution.dsn

        resolved = ResolvedDatabase(
            namespace=db.namespace,
            name=db.name,
            users=tuple(await self._resolve_users(key, db)),
        )

        try:
            state = await plugin.sync_database(resolved, dsn)
        except PluginError as e:
            await self._stop(key, db, ResultKind.SYNC_FAILED, e, error=e)
        except Exception as e:
            # driver errors a plugin did not wrap
            logger.error(
                "plugin_sync_unexpected_error",
                database=key,
                backend=plugin.backend,
                error_type=type(e).__name__,
            )
            await self._stop(key, db, ResultKind.SYNC_FAILED, e, error=e)

        if state == DatabaseState.CREATED:
            databases_created_total.labels(backend=plugin.backend).inc()
            await self.recorder.event(db, EVENT_TYPE_NORMAL, REASON_CREATED, MESSAGE_DATABASE_CREATED)

        try:
            await self.secrets.sync(db, resolved, dsn, server, plugin)
        except OwnershipConflictError as e:
            await self._stop(key, db, ResultKind.SECRET_CONFLICT, e, error=e)
        except SecretSyncError as e:
            await self._stop(key, db, ResultKind.SECRET_SYNC_FAILED, e, error=e)
        except DsnParseError as e:
            await self._stop(key, db, ResultKind.INVALID_DSN, e, source=resolution.source, error=e)

        was_synced = db.status.state == DatabaseState.SUCCESS
        result = await self._finish(key, db, ResultKind.SYNCED)
        if result.kind is ResultKind.SYNCED and not was_synced:
            await self.recorder.event(db, EVENT_TYPE_NORMAL, REASON_SYNCED, MESSAGE_DATABASE_SYNCED)
        return result

    async def _initialize(self, key: str, db: Database) -> Database:
        outcome = self.outcomes[ResultKind.INITIALIZING]
        try:
            return await self.status.update_database_status(
                key, db, outcome.state, outcome.render(key=key)
            )
        except StatusUpdateError as e:
            logger.warning("database_initial_status_failed", database=key, error=str(e.cause))
            return e.database

    async def _load_server(self, key: str, db: Database) -> Optional[DatabaseServer]:
        if not db.spec.server:
            return None

        # Servers are looked up in the Database's own namespace only
        fetched = await self.store.get_database_server(db.namespace, db.spec.server)
        if fetched.is_not_found:
            await self._stop(
                key, db, ResultKind.WAITING_FOR_SERVER,
                namespace=db.namespace, server=db.spec.server,
            )
        if fetched.is_error:
            await self._stop(
                key, None, ResultKind.SERVER_LOOKUP_FAILED, fetched.error,
                server=db.spec.server, error=fetched.error,
            )
        return fetched.obj

    async def _select_plugin(
        self, key: str, db: Database, server: Optional[DatabaseServer]
    ) -> DatabasePlugin:
        if not db.spec.server_type and server is None:
            await self._stop(key, db, ResultKind.NO_BACKEND)

        if db.spec.server_type:
            plugin = self.registry.get(db.spec.server_type)
        else:
            plugin = self.registry.for_server(server)

        if plugin is None:
            backend = db.spec.server_type or server.active_backend() or ""
            await self._stop(key, db, ResultKind.NO_PLUGIN, PluginNotFoundError(backend))
        return plugin

    async def _resolve_users(self, key: str, db: Database) -> List[ResolvedUser]:
        users = []
        for user in db.spec.users:
            password = user.password
            if user.password_from is not None:
                source = user.password_from.source_name
                fetched = await get_value_from_source(self.store, db.namespace, user.password_from)
                if fetched.is_not_found:
                    await self._stop(key, db, ResultKind.WAITING_FOR_PASSWORD, source=source, user=user.name)
                if fetched.is_error:
                    await self._stop(
                        key, db, ResultKind.INVALID_PASSWORD, fetched.error,
                        source=source, user=user.name, error=fetched.error,
                    )
                password = fetched.obj
            users.append(ResolvedUser(name=user.name, role=user.role, password=password))
        return users

    async def _stop(
        self,
        key: str,
        db: Optional[Database],
        kind: ResultKind,
        cause: Optional[Exception] = None,
        **params: Any,
    ) -> None:
        raise _Stop(await self._finish(key, db, kind, cause, **params))

    async def _finish(
        self,
        key: str,
        db: Optional[Database],
        kind: ResultKind,
        cause: Optional[Exception] = None,
        **params: Any,
    ) -> ReconcileResult:
        """Render the outcome of ``kind``, record its state and build the result."""
        outcome = self.outcomes[kind]
        params.setdefault("key", key)
        message = outcome.render(**params)
        result = ReconcileResult(
            key=key,
            kind=kind,
            state=outcome.state,
            message=message,
            requeue=outcome.requeue,
            error=cause,
        )

        if outcome.state is not None and db is not None:
            try:
                await self.status.update_database_status(key, db, outcome.state, message)
            except StatusUpdateError as e:
                failed = self.outcomes[ResultKind.STATUS_UPDATE_FAILED]
                logger.error("reconcile_status_not_recorded", database=key, kind=kind.value, error=str(e.cause))
                return ReconcileResult(
                    key=key,
                    kind=ResultKind.STATUS_UPDATE_FAILED,
                    state=None,
                    message=failed.render(key=key, error=e.cause),
                    requeue=failed.requeue,
                    error=e,
                )

        log = logger.info if kind is ResultKind.SYNCED else logger.warning
        log(
            "database_reconciled",
            database=key,
            kind=kind.value,
            state=outcome.state.value if outcome.state else None,
            requeue=outcome.requeue,
            message=message,
        )
        return result
