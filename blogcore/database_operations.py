from typing import Any

import asyncpg

from blogcore.db_context import DatabaseManager
from blogcore.errors import ConflictError, InternalError

CONFLICT_MESSAGES = {
    "posts_slug_locale_key": "Slug already exists",
    "posts_translation_locale_key": "Translation already exists",
}


class DatabaseOperations:
    """Composition class for database operations"""

    @staticmethod
    def get_connection() -> asyncpg.Connection:
        """Get the current database connection from context"""
        conn = DatabaseManager.get_current_connection()
        if not conn:
            raise ValueError(
                "No active transaction found. Repository methods must be called within a transaction context."
            )
        return conn

    async def _run(self, method: str, query: str, params: list[Any]) -> Any:
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        try:
            return await getattr(conn, method)(query, *params)
        except asyncpg.UniqueViolationError as exc:
            message = CONFLICT_MESSAGES.get(exc.constraint_name) or exc.detail or str(exc)
            raise ConflictError(message) from exc
        except asyncpg.PostgresError as exc:
            raise InternalError(str(exc)) from exc

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        return await self._run("fetch", query, params)

    async def fetch_one(self, query: str, params: list[Any]) -> Any:
        """Execute a query and fetch one row"""
        return await self._run("fetchrow", query, params)

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        """Execute query and fetch single value"""
        return await self._run("fetchval", query, params)

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute query and return the command status"""
        return await self._run("execute", query, params)
