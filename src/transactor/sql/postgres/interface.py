from __future__ import annotations

import logging
from typing import Any, List, Optional

from transactor.base.interface import Params, Row
from transactor.exception import TransactorError
from transactor.sql.interface import BaseDatabase, BaseTransaction

try:
    from psycopg.rows import dict_row
    from psycopg_pool import AsyncConnectionPool

    POSTGRES_ENABLED = True
except ModuleNotFoundError:
    POSTGRES_ENABLED = False

logger = logging.getLogger(__name__)


async def _execute(conn, query: str, params: Params) -> int:
    cursor = await conn.execute(query, params)
    return cursor.rowcount


async def _fetch_all(conn, query: str, params: Params) -> List[Row]:
    cursor = await conn.execute(query, params)
    return await cursor.fetchall()


async def _fetch_one(conn, query: str, params: Params) -> Optional[Row]:
    cursor = await conn.execute(query, params)
    return await cursor.fetchone()


class PostgresDatabase(BaseDatabase):
    """Interface for connecting to a Postgres database"""

    scheme = "postgres"

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: Optional[int] = None,
    ) -> None:
        """Postgres database initialization.

        Args:
            dsn (str): libpq connection string or URL, passed to psycopg
                as is
            min_size (int, optional): Minimum number of connections in
                pool. Defaults to 1
            max_size (int, optional): Maximum number of connections in
                pool. Defaults to None
        """
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        super().__init__()

    def _setup_pool(self):
        if not POSTGRES_ENABLED:
            raise TransactorError(
                "Postgres driver not found. Try reinstalling transactor: "
                "pip install transactor[postgres]"
            )
        self._pool = AsyncConnectionPool(
            self._dsn,
            min_size=self._min_size,
            max_size=self._max_size,
            kwargs={"row_factory": dict_row},
            open=False,
        )

    async def open(self):
        """Open connections to the pool"""
        await self._pool.open()

    async def close(self):
        """Close connections to the pool"""
        await self._pool.close()

    async def execute(self, query: str, params: Params = None) -> int:
        async with self._pool.connection() as conn:
            return await _execute(conn, query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        async with self._pool.connection() as conn:
            return await _fetch_all(conn, query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        async with self._pool.connection() as conn:
            return await _fetch_one(conn, query, params)

    async def begin(self) -> PostgresTransaction:
        # psycopg opens the transaction implicitly on the first statement
        connection_context = self._pool.connection()
        conn = await connection_context.__aenter__()
        logger.debug("Acquired connection from %s for transaction", self)
        return PostgresTransaction(conn, connection_context)


class PostgresTransaction(BaseTransaction):
    def __init__(self, conn, connection_context: Any) -> None:
        super().__init__()
        self._conn = conn
        self._connection_context = connection_context

    async def execute(self, query: str, params: Params = None) -> int:
        return await _execute(self._conn, query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        return await _fetch_all(self._conn, query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        return await _fetch_one(self._conn, query, params)

    async def commit(self) -> None:
        self._finish()
        try:
            await self._conn.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        self._finish()
        try:
            await self._conn.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        try:
            await self._connection_context.__aexit__(None, None, None)
        except Exception as e:
            logger.warning("Error releasing connection to the pool: %s", e)
