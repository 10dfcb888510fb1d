from __future__ import annotations

from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

Params = Optional[Union[Sequence[Any], Dict[str, Any]]]
Row = Dict[str, Any]


@runtime_checkable
class Queryable(Protocol):
    """Anything that can run a statement.

    Parameters are passed through untouched, so their placeholder style
    is whatever the underlying driver expects.
    """

    async def execute(self, query: str, params: Params = None) -> int:
        """Execute a statement and return the number of affected rows"""
        ...

    async def fetch_all(self, query: str, params: Params = None) -> List[Row]:
        ...

    async def fetch_one(
        self, query: str, params: Params = None
    ) -> Optional[Row]:
        ...


@runtime_checkable
class Transactional(Queryable, Protocol):
    """A handle whose work can be committed or rolled back"""

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


@runtime_checkable
class Beginnable(Queryable, Protocol):
    """A handle that can start a transaction"""

    async def begin(self) -> Transactional:
        ...
