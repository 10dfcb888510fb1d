from __future__ import annotations

import logging
from typing import Any, List, Optional

from transactor.base.interface import Params, Row
from transactor.exception import TransactorError
from transactor.sql.interface import BaseDatabase, BaseTransaction

try:
    import pyodbc

    SQLSERVER_ENABLED = True
except ImportError:
    # pyodbc raises a plain ImportError when the ODBC libraries are missing
    SQLSERVER_ENABLED = False

logger = logging.getLogger(__name__)


def _execute(conn, query: str, params: Params) -> int:
    cursor = conn.execute(query, params or [])
    return cursor.rowcount


def _rows(cursor) -> List[Row]:
    if cursor.description is None:
        return []
    columns = [column[0] for column in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def _fetch_all(conn, query: str, params: Params) -> List[Row]:
    return _rows(conn.execute(query, params or []))


def _fetch_one(conn, query: str, params: Params) -> Optional[Row]:
    cursor = conn.execute(query, params or [])
    if cursor.description is None:
        return None
    columns = [column[0] for column in cursor.description]
    row = cursor.fetchone()
    if row is None:
        return None
    return dict(zip(columns, row))


class SQLServerDatabase(BaseDatabase):
    """Interface for connecting to a SQL Server database

    Queries outside of a transaction share one autocommit connection. Each
    transaction runs on its own connection, with autocommit disabled,
    that is closed once the transaction is committed or rolled back.
    Pair it with `nested_transactions_mssql`.
    """

    scheme = "mssql+pyodbc"

    def __init__(self, conn_string: str):
        """SQL Server database initialization.

        Args:
            conn_string (str): ODBC connection string, passed to pyodbc
                as is
        """
        self._conn_string = conn_string
        self._db: Any = None
        super().__init__()

    def _setup_pool(self):
        if not SQLSERVER_ENABLED:
            raise TransactorError(
                "SQL Server driver not found. Try reinstalling transactor: "
                "pip install transactor[sqlserver]"
            )

    async def open(self):
        """Open the shared connection"""
        self._db = pyodbc.connect(self._conn_string, autocommit=True)

    async def close(self):
        """Close the shared connection"""
        if self._db:
            self._db.close()
            self._db = None

    async def connection(self):
        if not self._db:
            await self.open()
        return self._db

    async def execute(self, query: str, params: Params = None) -> int:
        return _execute(await self.connection(), query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        return _fetch_all(await self.connection(), query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        return _fetch_one(await self.connection(), query, params)

    async def begin(self) -> SQLServerTransaction:
        conn = pyodbc.connect(self._conn_string, autocommit=False)
        logger.debug("Began transaction on %s", self)
        return SQLServerTransaction(conn)


class SQLServerTransaction(BaseTransaction):
    def __init__(self, conn) -> None:
        super().__init__()
        self._conn = conn

    async def execute(self, query: str, params: Params = None) -> int:
        return _execute(self._conn, query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        return _fetch_all(self._conn, query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        return _fetch_one(self._conn, query, params)

    async def commit(self) -> None:
        self._finish()
        try:
            self._conn.commit()
        finally:
            self._conn.close()

    async def rollback(self) -> None:
        self._finish()
        try:
            self._conn.rollback()
        finally:
            self._conn.close()
