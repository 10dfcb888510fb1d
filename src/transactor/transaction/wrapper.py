from __future__ import annotations

import logging
from typing import List, Optional

from transactor.base.interface import Params, Row, Transactional

from .interfaces import NestedTransactionsNotSupportedError

logger = logging.getLogger(__name__)


class TransactionWrapper:
    """Base for the handles bound inside a transaction.

    Queries are forwarded to the real transaction. Subclasses decide what
    `begin`, `commit` and `rollback` mean at their nesting level.
    """

    def __init__(self, tx: Transactional) -> None:
        self.tx = tx

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.tx}>"

    async def execute(self, query: str, params: Params = None) -> int:
        return await self.tx.execute(query, params)

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        return await self.tx.fetch_all(query, params)

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        return await self.tx.fetch_one(query, params)

    async def begin(self) -> Transactional:
        raise NotImplementedError

    async def commit(self) -> None:
        raise NotImplementedError

    async def rollback(self) -> None:
        raise NotImplementedError


class NoNestedTransaction(TransactionWrapper):
    """Transaction that refuses to be nested"""

    async def begin(self) -> Transactional:
        raise NestedTransactionsNotSupportedError(
            "nested transactions are not supported"
        )

    async def commit(self) -> None:
        await self.tx.commit()

    async def rollback(self) -> None:
        await self.tx.rollback()


class FlattenedTransaction(TransactionWrapper):
    """Transaction where every nesting level shares the outermost one.

    Nested commits and rollbacks do nothing: only the outermost
    transaction is ever committed or rolled back, so intermediate changes
    cannot be kept or discarded on their own.
    """

    async def begin(self) -> Transactional:
        logger.debug("Flattening nested transaction into %s", self.tx)
        return self.tx

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
