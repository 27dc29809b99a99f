from contextlib import asynccontextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any

import asyncpg
import structlog

logger = structlog.get_logger(__name__)

# Context variable holding the connection of the transaction in progress (one per task)
_current_connection: ContextVar[asyncpg.Connection | None] = ContextVar(
    "current_connection", default=None
)
_db_pools: dict[str, asyncpg.Pool] = {}


class DatabaseManager:
    """Manages database pools and the connection bound to the current task"""

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        """Register a database pool under a name"""
        _db_pools[name] = pool

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        """Get a database pool by name"""
        if name not in _db_pools:
            raise ValueError(f"Database pool '{name}' not found")
        return _db_pools[name]

    @classmethod
    async def remove_pool(cls, name: str) -> asyncpg.Pool | None:
        """Unregister a pool and return it so the caller can close it"""
        return _db_pools.pop(name, None)

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        """Get the current active connection from context"""
        return _current_connection.get()

    @classmethod
    def log_query(cls, query: str, params: list[Any]):
        """Emit the statement at debug level"""
        logger.debug("sql_query", query=query, params=params)

    @classmethod
    @asynccontextmanager
    async def transaction(cls, db_name: str = "default"):
        """Context manager for database transactions.

        Behavior:
        - If called within an existing transaction, it opens a nested transaction
          (savepoint) on the same connection.
        - Otherwise it acquires a connection from the named pool and starts a
          transaction. The connection goes back to the pool when the context exits,
          whether normally or through an exception.

        Args:
            db_name: Name of the database pool to use
        """
        current_conn = _current_connection.get()

        if current_conn:
            async with current_conn.transaction():
                yield current_conn
        else:
            pool = await cls.get_pool(db_name)
            async with pool.acquire() as conn, conn.transaction():
                conn_token = _current_connection.set(conn)
                try:
                    yield conn
                finally:
                    _current_connection.reset(conn_token)


def transactional(db_name: str = "default"):
    """Decorator to run a coroutine function within a database transaction.

    Example:
        @transactional("default")
        async def rename_tag(tag_id, name):
            return await tag_repo.update(tag_id, TagUpdate(name=name))
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with DatabaseManager.transaction(db_name):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
