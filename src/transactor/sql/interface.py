from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from transactor.base.interface import Params, Row, Transactional
from transactor.transaction.interfaces import TransactionError


class BaseDatabase(ABC):
    """Root database handle backed by a driver"""

    scheme = "dummy"

    def __init__(self) -> None:
        self._setup_pool()

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.scheme}>"

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    def _setup_pool(self): ...

    @abstractmethod
    async def open(self): ...

    @abstractmethod
    async def close(self): ...

    @abstractmethod
    async def execute(self, query: str, params: Params = None) -> int: ...

    @abstractmethod
    async def fetch_all(
        self, query: str, params: Params = None
    ) -> List[Row]: ...

    @abstractmethod
    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]: ...

    @abstractmethod
    async def begin(self) -> Transactional: ...


class BaseTransaction(ABC):
    """A driver transaction, holding one connection until it is
    committed or rolled back"""

    def __init__(self) -> None:
        self._finished = False

    def __str__(self) -> str:
        status = "finished" if self._finished else "active"
        return f"<{self.__class__.__name__} ({status})>"

    @property
    def is_active(self) -> bool:
        return not self._finished

    def _finish(self) -> None:
        if self._finished:
            raise TransactionError("transaction already completed")
        self._finished = True

    @abstractmethod
    async def execute(self, query: str, params: Params = None) -> int: ...

    @abstractmethod
    async def fetch_all(
        self, query: str, params: Params = None
    ) -> List[Row]: ...

    @abstractmethod
    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]: ...

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
