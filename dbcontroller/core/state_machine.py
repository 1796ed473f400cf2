"""
Reconciliation outcomes for Database resources.

Every decision point of a reconciliation attempt maps to exactly one
``ResultKind``. The ``OUTCOMES`` table binds each kind to the status state it
records, whether the key must be requeued, and the message template. The table
is built once at import, is read-only, and is handed to the reconciler by
reference.

States:
- Pending: waiting on something that is expected to appear (retried)
- Error: failed for this attempt; retried only when the failure may heal
- Success: synced, steady state
- Created: transient marker, the database was just provisioned

Usage:
    >>> from dbcontroller.core.state_machine import OUTCOMES, ResultKind
    >>>
    >>> outcome = OUTCOMES[ResultKind.WAITING_FOR_SERVER]
    >>> outcome.state, outcome.requeue
    (<DatabaseState.PENDING: 'Pending'>, True)
    >>> outcome.render(namespace="default", server="pg")
    "waiting for database server 'default/pg'"
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from dbcontroller.models.database import DatabaseState

MESSAGE_DATABASE_SYNCED = "Database synced successfully"
MESSAGE_DATABASE_CREATED = "Database created successfully"

# Event reasons
REASON_SYNCED = "Synced"
REASON_CREATED = "Created"
REASON_RESOURCE_EXISTS = "ErrResourceExists"


class ResultKind(str, Enum):
    """Closed set of reconciliation outcomes."""

    DATABASE_LOOKUP_FAILED = "database_lookup_failed"
    INITIALIZING = "initializing"
    WAITING_FOR_SERVER = "waiting_for_server"
    SERVER_LOOKUP_FAILED = "server_lookup_failed"
    NO_BACKEND = "no_backend"
    NO_PLUGIN = "no_plugin"
    NO_DSN_SOURCE = "no_dsn_source"
    WAITING_FOR_DSN = "waiting_for_dsn"
    INVALID_DSN = "invalid_dsn"
    WAITING_FOR_PASSWORD = "waiting_for_password"
    INVALID_PASSWORD = "invalid_password"
    SYNC_FAILED = "sync_failed"
    SECRET_SYNC_FAILED = "secret_sync_failed"
    SECRET_CONFLICT = "secret_conflict"
    STATUS_UPDATE_FAILED = "status_update_failed"
    SYNCED = "synced"


@dataclass(frozen=True)
class Outcome:
    """What a ResultKind means for status and queueing."""

    state: Optional[DatabaseState]
    requeue: bool
    template: str

    def render(self, **params: Any) -> str:
        return self.template.format(**params)


OUTCOMES: Mapping[ResultKind, Outcome] = MappingProxyType({
    ResultKind.DATABASE_LOOKUP_FAILED: Outcome(
        None, True,
        "error retrieving database '{key}': {error}",
    ),
    ResultKind.INITIALIZING: Outcome(
        DatabaseState.PENDING, False,
        "reconciling database '{key}'",
    ),
    ResultKind.WAITING_FOR_SERVER: Outcome(
        DatabaseState.PENDING, True,
        "waiting for database server '{namespace}/{server}'",
    ),
    ResultKind.SERVER_LOOKUP_FAILED: Outcome(
        None, True,
        "error retrieving database server '{server}' for database '{key}': {error}",
    ),
    ResultKind.NO_BACKEND: Outcome(
        DatabaseState.ERROR, False,
        "database '{key}' has no serverType or server set",
    ),
    ResultKind.NO_PLUGIN: Outcome(
        DatabaseState.ERROR, False,
        "database '{key}' does not have a valid database plugin",
    ),
    ResultKind.NO_DSN_SOURCE: Outcome(
        DatabaseState.ERROR, False,
        "database '{key}' has no dsn, dsnFrom or server to read a DSN from",
    ),
    ResultKind.WAITING_FOR_DSN: Outcome(
        DatabaseState.PENDING, True,
        "waiting to get DSN for database '{key}' from '{source}'",
    ),
    ResultKind.INVALID_DSN: Outcome(
        DatabaseState.ERROR, False,
        "failed to get valid DSN for database '{key}' from '{source}': {error}",
    ),
    ResultKind.WAITING_FOR_PASSWORD: Outcome(
        DatabaseState.PENDING, True,
        "waiting for secret or configmap '{source}' for user '{user}'",
    ),
    ResultKind.INVALID_PASSWORD: Outcome(
        DatabaseState.ERROR, False,
        "failed to get password for user '{user}' from '{source}': {error}",
    ),
    ResultKind.SYNC_FAILED: Outcome(
        DatabaseState.ERROR, True,
        "error syncing database '{key}': {error}",
    ),
    ResultKind.SECRET_SYNC_FAILED: Outcome(
        DatabaseState.ERROR, True,
        "error syncing database secrets '{key}': {error}",
    ),
    ResultKind.SECRET_CONFLICT: Outcome(
        DatabaseState.ERROR, False,
        "error syncing database secrets '{key}': {error}",
    ),
    ResultKind.STATUS_UPDATE_FAILED: Outcome(
        None, True,
        "error updating status for database '{key}': {error}",
    ),
    ResultKind.SYNCED: Outcome(
        DatabaseState.SUCCESS, False,
        "Successfully synced database '{key}'",
    ),
})


@dataclass
class ReconcileResult:
    """
    Decision returned to the worker for one reconciliation attempt.

    ``kind`` is None when the key was dropped (malformed or deleted).
    """

    key: str
    kind: Optional[ResultKind] = None
    state: Optional[DatabaseState] = None
    message: str = ""
    requeue: bool = False
    error: Optional[Exception] = field(default=None, repr=False)

    @property
    def dropped(self) -> bool:
        return self.kind is None

    @classmethod
    def drop(cls, key: str, message: str = "") -> "ReconcileResult":
        return cls(key=key, message=message)
