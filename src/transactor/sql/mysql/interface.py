from __future__ import annotations

import logging
from typing import Any, List, Optional

from transactor.base.interface import Params, Row
from transactor.exception import TransactorError
from transactor.sql.interface import BaseDatabase, BaseTransaction

try:
    from asyncmy import create_pool
    from asyncmy.cursors import DictCursor

    MYSQL_ENABLED = True
except ModuleNotFoundError:
    MYSQL_ENABLED = False

logger = logging.getLogger(__name__)


async def _execute(conn, query: str, params: Params) -> int:
    async with conn.cursor(cursor=DictCursor) as cursor:
        return await cursor.execute(query, params)


async def _fetch_all(conn, query: str, params: Params) -> List[Row]:
    async with conn.cursor(cursor=DictCursor) as cursor:
        await cursor.execute(query, params)
        return list(await cursor.fetchall())


async def _fetch_one(conn, query: str, params: Params) -> Optional[Row]:
    async with conn.cursor(cursor=DictCursor) as cursor:
        await cursor.execute(query, params)
        return await cursor.fetchone()


class MysqlDatabase(BaseDatabase):
    """Interface for connecting to a MySQL or MariaDB database

    Connections run in autocommit mode: queries made outside of a
    transaction are committed right away.
    """

    scheme = "mysql"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        user: Optional[str] = None,
        password: Optional[str] = None,
        db: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 10,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._db = db
        self._min_size = min_size
        self._max_size = max_size
        self._pool: Any = None
        super().__init__()

    def __str__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"{self.scheme}://{self._user}@{self._host}:{self._port}"
            f"/{self._db}>"
        )

    def _setup_pool(self):
        if not MYSQL_ENABLED:
            raise TransactorError(
                "MySQL driver not found. Try reinstalling transactor: "
                "pip install transactor[mysql]"
            )

    async def open(self):
        """Open connections to the pool"""
        self._pool = await create_pool(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password,
            db=self._db,
            minsize=self._min_size,
            maxsize=self._max_size,
            autocommit=True,
        )

    async def close(self):
        """Close connections to the pool"""
        if self._pool:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None

    async def execute(self, query: str, params: Params = None) -> int:
        async with self._pool.acquire() as conn:
            return await _execute(conn, query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        async with self._pool.acquire() as conn:
            return await _fetch_all(conn, query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        async with self._pool.acquire() as conn:
            return await _fetch_one(conn, query, params)

    async def begin(self) -> MysqlTransaction:
        connection_context = self._pool.acquire()
        conn = await connection_context.__aenter__()
        try:
            await conn.begin()
        except BaseException:
            await connection_context.__aexit__(None, None, None)
            raise

        logger.debug("Began transaction on %s", self)
        return MysqlTransaction(conn, connection_context)


class MysqlTransaction(BaseTransaction):
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
