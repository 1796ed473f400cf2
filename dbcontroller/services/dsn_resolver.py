"""
DSN resolution for Database resources.

Exactly one source is consulted per attempt, first match wins:

1. ``spec.dsn`` literal
2. ``spec.dsnFrom`` value source
3. the ``dsn`` key of the Secret named after the referenced DatabaseServer
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dbcontroller.config.logging import get_logger
from dbcontroller.exceptions import ControllerError
from dbcontroller.models import Database, DatabaseServer, ValueSource
from dbcontroller.models.database import KeySelector
from dbcontroller.models.secret import DSN_KEY
from dbcontroller.repositories.object_store import ObjectStore
from dbcontroller.services.value_source import get_value_from_source

logger = get_logger(__name__)


class DsnOutcome(str, Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    NO_SOURCE = "no_source"


@dataclass(frozen=True)
class DsnResolution:
    """Result of resolving a Database's DSN."""

    outcome: DsnOutcome
    dsn: str = ""
    source: str = ""
    error: Optional[ControllerError] = None

    @property
    def resolved(self) -> bool:
        return self.outcome is DsnOutcome.RESOLVED


class DsnResolver:
    """Resolve the superuser DSN a plugin connects with."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def resolve(self, db: Database, server: Optional[DatabaseServer] = None) -> DsnResolution:
        """
        Resolve the DSN of ``db``.

        Args:
            db: Database being reconciled
            server: The referenced DatabaseServer, if the Database names one

        Returns:
            DsnResolution; NOT_FOUND when the source object does not exist yet,
            FAILED when it exists but yields no value, NO_SOURCE when the
            Database declares nothing to read a DSN from
        """
        if db.spec.dsn:
            return DsnResolution(DsnOutcome.RESOLVED, dsn=db.spec.dsn, source="spec.dsn")

        if db.spec.dsn_from is not None:
            source = db.spec.dsn_from
        elif server is not None or db.spec.server:
            server_name = server.name if server is not None else db.spec.server
            source = ValueSource(secret_key_ref=KeySelector(name=server_name, key=DSN_KEY))
        else:
            return DsnResolution(DsnOutcome.NO_SOURCE)

        source_name = source.source_name
        fetched = await get_value_from_source(self.store, db.namespace, source)
        if fetched.is_found:
            logger.debug("dsn_resolved", database=db.key, source=source_name)
            return DsnResolution(DsnOutcome.RESOLVED, dsn=fetched.obj, source=source_name)
        if fetched.is_not_found:
            return DsnResolution(DsnOutcome.NOT_FOUND, source=source_name)
        return DsnResolution(DsnOutcome.FAILED, source=source_name, error=fetched.error)
