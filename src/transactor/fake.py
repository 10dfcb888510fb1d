from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator

from transactor.base.interface import Queryable
from transactor.transactor import AbstractTransactor


class FakeTransactor(AbstractTransactor):
    """Transactor that does not open any transaction.

    `within_transaction` just awaits its callback and `get_db` always
    returns the database it was given. Meant for tests where the
    transaction system itself does not need to be tested.
    """

    def __init__(self, db: Queryable) -> None:
        self.db = db
        self._depth: ContextVar[int] = ContextVar("fake_depth", default=0)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Queryable]:
        token = self._depth.set(self._depth.get() + 1)
        try:
            yield self.db
        finally:
            self._depth.reset(token)

    def get_db(self) -> Queryable:
        return self.db

    def is_within_transaction(self) -> bool:
        return self._depth.get() > 0
