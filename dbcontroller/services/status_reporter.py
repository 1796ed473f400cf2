"""
Status subresource updates for Database resources.
"""
from dbcontroller.config.logging import get_logger
from dbcontroller.exceptions import StatusUpdateError, StoreError
from dbcontroller.models import Database, DatabaseState
from dbcontroller.repositories.object_store import ObjectStore

logger = get_logger(__name__)


class StatusReporter:
    """Record a Database's reconciliation state through its status subresource."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def update_database_status(
        self,
        key: str,
        db: Database,
        state: DatabaseState,
        message: str,
    ) -> Database:
        """
        Set ``status.state`` and ``status.message`` of a Database.

        ``db`` itself is never modified; the update is applied to a deep copy,
        persisted against the copy's resource version, and the stored object is
        read back. When the snapshot already carries the same state and message
        nothing is written.

        Args:
            key: Reconciliation key, used in logs and errors
            db: Snapshot of the Database
            state: New state
            message: New message

        Returns:
            The canonical Database after the update (the snapshot if unchanged)

        Raises:
            StatusUpdateError: If the update could not be persisted; carries ``db``
        """
        if db.status.state == state and db.status.message == message:
            return db

        updated = db.model_copy(deep=True)
        updated.status.state = state
        updated.status.message = message

        try:
            persisted = await self.store.update_database_status(updated)
        except StoreError as e:
            logger.warning(
                "database_status_update_failed",
                database=key,
                state=state.value,
                status_code=e.status,
                error=e.message,
            )
            raise StatusUpdateError(key, state.value, db, e)

        logger.info("database_status_updated", database=key, state=state.value, message=message)

        fetched = await self.store.get_database(db.namespace, db.name)
        if fetched.is_found:
            return fetched.obj
        return persisted
