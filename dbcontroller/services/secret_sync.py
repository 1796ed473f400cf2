"""
Credential secret synchronization.

Each Database owns at most one Secret, named like the Database, holding the DSN
its first admin user connects with. A Secret of that name controlled by
anything else is never touched.
"""
from typing import Optional

from dbcontroller.config.logging import get_logger
from dbcontroller.core.state_machine import REASON_RESOURCE_EXISTS
from dbcontroller.exceptions import OwnershipConflictError, SecretSyncError, StoreError
from dbcontroller.models import Database, DatabaseServer, ObjectMeta, ResolvedDatabase, Secret
from dbcontroller.models.secret import DSN_KEY
from dbcontroller.plugins.base import DatabasePlugin
from dbcontroller.repositories.object_store import ObjectStore
from dbcontroller.services.event_recorder import EVENT_TYPE_WARNING, EventRecorder
from dbcontroller.services.metrics import secrets_created_total
from dbcontroller.utils.dsn import parse_host_port

logger = get_logger(__name__)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"


class SecretSynchronizer:
    """Ensure the owned credential Secret of a Database exists."""

    def __init__(self, store: ObjectStore, recorder: EventRecorder, managed_by: str = "database-controller"):
        self.store = store
        self.recorder = recorder
        self.managed_by = managed_by

    async def sync(
        self,
        db: Database,
        resolved: ResolvedDatabase,
        dsn: str,
        server: Optional[DatabaseServer],
        plugin: DatabasePlugin,
    ) -> Optional[Secret]:
        """
        Create the credential Secret if it does not exist yet.

        Args:
            db: Database snapshot (owner of the Secret)
            resolved: Database with resolved user passwords
            dsn: Superuser DSN, used for the endpoint when ``server`` is None
            server: Referenced DatabaseServer, if any
            plugin: Plugin rendering the per-user DSN

        Returns:
            The owned Secret, or None when there was nothing to create

        Raises:
            OwnershipConflictError: If a Secret of that name belongs to someone else
            SecretSyncError: If the Secret could not be read or created
            DsnParseError: If no server is referenced and ``dsn`` has no usable endpoint
        """
        if not resolved.users:
            logger.debug("secret_sync_skipped_no_users", database=db.key)
            return None

        fetched = await self.store.get_secret(db.namespace, db.name)
        if fetched.is_error:
            raise SecretSyncError(
                f"failed to get secret '{db.key}': {fetched.error}",
                details={"secret": db.name},
            )

        if fetched.is_found:
            secret = fetched.obj
            if not secret.is_controlled_by(db.metadata.uid):
                conflict = OwnershipConflictError(secret.metadata.name)
                await self.recorder.event(db, EVENT_TYPE_WARNING, REASON_RESOURCE_EXISTS, conflict.message)
                raise conflict
            return secret

        admins = resolved.admin_users
        if not admins:
            return None

        user = admins[0]
        if server is None:
            host, port = parse_host_port(dsn)
            server = DatabaseServer.from_endpoint(db.name, db.namespace, host, port)

        secret = Secret(
            metadata=ObjectMeta(
                name=db.name,
                namespace=db.namespace,
                labels={MANAGED_BY_LABEL: self.managed_by},
                owner_references=[db.controller_reference()],
            ),
            data={DSN_KEY: plugin.dsn(user.name, user.password, resolved, server)},
        )
        try:
            created = await self.store.create_secret(secret)
        except StoreError as e:
            raise SecretSyncError(f"failed to create secret '{db.key}': {e.message}", details={"secret": db.name})

        secrets_created_total.inc()
        logger.info("database_secret_created", database=db.key, user=user.name)
        return created
