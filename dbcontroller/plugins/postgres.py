"""
PostgreSQL plugin.

Creates the logical database and one login role per declared user through an
asyncpg connection opened with the server's superuser DSN. Every statement is
guarded by a catalog lookup so repeated syncs are no-ops.
"""
import asyncio
from urllib.parse import quote

import asyncpg

from dbcontroller.config.logging import get_logger
from dbcontroller.exceptions import DatabaseSyncError
from dbcontroller.models import DatabaseServer, DatabaseState, ResolvedDatabase, ResolvedUser
from dbcontroller.plugins.base import DatabasePlugin, quote_ident, quote_literal

logger = get_logger(__name__)


class PostgresPlugin(DatabasePlugin):
    """Provision databases on a PostgreSQL server."""

    backend = "postgres"
    default_port = 5432

    def __init__(self, connect_timeout: float = 10.0):
        self.connect_timeout = connect_timeout

    def dsn(self, user: str, password: str, db: ResolvedDatabase, server: DatabaseServer) -> str:
        return (
            f"postgres://{quote(user, safe='')}:{quote(password, safe='')}"
            f"@{server.endpoint_host}:{self.server_port(server)}/{db.name}?sslmode=disable"
        )

    async def sync_database(self, db: ResolvedDatabase, dsn: str) -> DatabaseState:
        try:
            conn = await asyncpg.connect(dsn=dsn, timeout=self.connect_timeout)
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise DatabaseSyncError(db.key, f"cannot connect to server: {e}")

        try:
            created = await self._ensure_database(conn, db.name)
            for user in db.users:
                await self._ensure_role(conn, db.name, user)
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise DatabaseSyncError(db.key, str(e))
        finally:
            await conn.close()

        if created:
            logger.info("postgres_database_created", database=db.key)
            return DatabaseState.CREATED
        return DatabaseState.SUCCESS

    async def _ensure_database(self, conn: asyncpg.Connection, name: str) -> bool:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", name)
        if exists:
            return False
        # CREATE DATABASE cannot take bind parameters
        await conn.execute(f"CREATE DATABASE {quote_ident(name)}")
        return True

    async def _ensure_role(self, conn: asyncpg.Connection, database: str, user: ResolvedUser) -> None:
        role = quote_ident(user.name)
        exists = await conn.fetchval("SELECT 1 FROM pg_roles WHERE rolname = $1", user.name)
        if not exists:
            await conn.execute(f"CREATE ROLE {role} WITH LOGIN PASSWORD {quote_literal(user.password)}")
            logger.info("postgres_role_created", database=database, role=user.name)
        elif user.password:
            await conn.execute(f"ALTER ROLE {role} WITH LOGIN PASSWORD {quote_literal(user.password)}")

        if user.is_admin:
            await conn.execute(f"GRANT ALL PRIVILEGES ON DATABASE {quote_ident(database)} TO {role}")
        else:
            await conn.execute(f"GRANT CONNECT ON DATABASE {quote_ident(database)} TO {role}")
