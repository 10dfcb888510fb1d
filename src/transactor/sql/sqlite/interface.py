from __future__ import annotations

import logging
from sqlite3 import Cursor
from typing import Any, Dict, List, Optional, Tuple

from transactor.base.interface import Params, Row
from transactor.exception import TransactorError
from transactor.sql.interface import BaseDatabase, BaseTransaction

try:
    import aiosqlite

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False

logger = logging.getLogger(__name__)


def _dict_factory(cursor: Cursor, row: Tuple[Any, ...]) -> Dict[str, Any]:
    return {val[0]: row[idx] for idx, val in enumerate(cursor.description)}


async def _execute(conn, query: str, params: Params) -> int:
    cursor = await conn.execute(query, params)
    rowcount = cursor.rowcount
    await cursor.close()
    return rowcount


async def _fetch_all(conn, query: str, params: Params) -> List[Row]:
    async with conn.execute(query, params) as cursor:
        return list(await cursor.fetchall())


async def _fetch_one(conn, query: str, params: Params) -> Optional[Row]:
    async with conn.execute(query, params) as cursor:
        return await cursor.fetchone()


class SQLiteDatabase(BaseDatabase):
    """Interface for connecting to a SQLite database

    Queries outside of a transaction share one connection, in autocommit
    mode. Each transaction opens its own connection with
    `BEGIN IMMEDIATE`, so only one transaction writes at a time: another
    `begin` (or root write) waits up to `timeout` seconds for the
    database lock, then fails with "database is locked".

    Since every transaction has its own connection, `:memory:` databases
    are not shared between them. Use a file.
    """

    scheme = "sqlite"

    def __init__(self, db_path: str, timeout: float = 5.0):
        """SQLite database initialization.

        Args:
            db_path (str): Path to the database file
            timeout (float, optional): Seconds to wait for the database
                lock held by another connection. Defaults to 5.0
        """
        self._db_path = db_path
        self._timeout = timeout
        self._db: Optional[Any] = None
        super().__init__()

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._db_path}>"

    def _setup_pool(self):
        if not AIOSQLITE_ENABLED:
            raise TransactorError(
                "SQLite driver not found. Try reinstalling transactor: "
                "pip install transactor[sqlite]"
            )

    async def _connect(self):
        conn = await aiosqlite.connect(
            self._db_path, timeout=self._timeout, isolation_level=None
        )
        conn.row_factory = _dict_factory
        return conn

    async def open(self):
        """Open the shared connection to the database"""
        self._db = await self._connect()

    async def close(self):
        """Close the shared connection to the database"""
        if self._db:
            await self._db.close()
            self._db = None

    async def connection(self):
        """Obtain the shared connection, opening it if needed"""
        if not self._db:
            await self.open()
        return self._db

    async def execute(self, query: str, params: Params = None) -> int:
        return await _execute(await self.connection(), query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        return await _fetch_all(await self.connection(), query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        return await _fetch_one(await self.connection(), query, params)

    async def begin(self) -> SQLiteTransaction:
        conn = await self._connect()
        try:
            await _execute(conn, "BEGIN IMMEDIATE", None)
        except BaseException:
            await conn.close()
            raise

        logger.debug("Began transaction on %s", self)
        return SQLiteTransaction(conn)


class SQLiteTransaction(BaseTransaction):
    def __init__(self, conn) -> None:
        super().__init__()
        self._conn = conn

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
            await _execute(self._conn, "COMMIT", None)
        except Exception:
            if self._conn.in_transaction:
                await _execute(self._conn, "ROLLBACK", None)
            raise
        finally:
            await self._conn.close()

    async def rollback(self) -> None:
        self._finish()
        try:
            await _execute(self._conn, "ROLLBACK", None)
        finally:
            await self._conn.close()
