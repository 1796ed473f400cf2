"""
Database plugin contract.

A plugin provisions logical databases on one backend type and renders
connection strings for it. The reconciler treats every backend uniformly
through these two operations.
"""
from abc import ABC, abstractmethod
from typing import ClassVar

from dbcontroller.models import DatabaseServer, DatabaseState, ResolvedDatabase


def quote_ident(identifier: str) -> str:
    """Quote a SQL identifier with double quotes."""
    return '"' + identifier.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a SQL string literal with single quotes."""
    return "'" + value.replace("'", "''") + "'"


class DatabasePlugin(ABC):
    """Backend-specific provisioning and DSN rendering."""

    backend: ClassVar[str]
    default_port: ClassVar[int]

    @abstractmethod
    async def sync_database(self, db: ResolvedDatabase, dsn: str) -> DatabaseState:
        """
        Bring the logical database and its users to the desired state.

        Args:
            db: Database with resolved user passwords
            dsn: Superuser connection string of the server

        Returns:
            DatabaseState.CREATED if the database was provisioned by this call,
            DatabaseState.SUCCESS if it already existed

        Raises:
            DatabaseSyncError: If the backend could not be synced
        """

    @abstractmethod
    def dsn(self, user: str, password: str, db: ResolvedDatabase, server: DatabaseServer) -> str:
        """Render the connection string ``user`` should use to reach ``db`` on ``server``."""

    def server_port(self, server: DatabaseServer) -> int:
        return server.spec.service_port or self.default_port
