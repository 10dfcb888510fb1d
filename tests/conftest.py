from typing import Dict, List

import pytest

from transactor import SQLiteDatabase


class StatementFailure(Exception):
    pass


class RecordingTransaction:
    def __init__(self, db: "RecordingDatabase"):
        self.db = db

    def _record(self, statement: str):
        self.db.statements.append(statement)
        error = self.db.failures.get(statement)
        if error:
            raise error

    async def execute(self, query, params=None):
        self._record(query)
        return 0

    async def fetch_all(self, query, params=None):
        self._record(query)
        return []

    async def fetch_one(self, query, params=None):
        self._record(query)
        return None

    async def commit(self):
        self._record("COMMIT")

    async def rollback(self):
        self._record("ROLLBACK")


class RecordingDatabase:
    """Database double that records every statement it receives.

    Statements listed in `failures` raise the associated error, after
    being recorded.
    """

    def __init__(self):
        self.statements: List[str] = []
        self.failures: Dict[str, Exception] = {}
        self.transactions: List[RecordingTransaction] = []

    def fail_on(self, statement: str, error: Exception = None):
        self.failures[statement] = error or StatementFailure(statement)

    async def execute(self, query, params=None):
        self.statements.append(f"ROOT {query}")
        return 0

    async def fetch_all(self, query, params=None):
        return []

    async def fetch_one(self, query, params=None):
        return None

    async def begin(self):
        self.statements.append("BEGIN")
        error = self.failures.get("BEGIN")
        if error:
            raise error
        tx = RecordingTransaction(self)
        self.transactions.append(tx)
        return tx


@pytest.fixture
def db():
    return RecordingDatabase()


@pytest.fixture
async def sqlite_db(tmp_path):
    database = SQLiteDatabase(str(tmp_path / "balances.db"))
    await database.open()
    await database.execute(
        "CREATE TABLE balances (id INTEGER PRIMARY KEY, amount INTEGER)"
    )
    await database.execute("INSERT INTO balances (id, amount) VALUES (1, 100)")
    yield database
    await database.close()
