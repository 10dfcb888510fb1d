from __future__ import annotations

from contextlib import contextmanager
from contextvars import Context, ContextVar, Token
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union
from uuid import uuid4


@dataclass(frozen=True)
class Root:
    """No transaction is active: ``handle`` is the root database"""

    handle: Any


@dataclass(frozen=True)
class Nested:
    """A transaction is active: ``handle`` is the wrapper bound by the
    enclosing transaction"""

    handle: Any


Scope = Union[Root, Nested]


class TransactionScope:
    """Binds the active transaction handle to the current context.

    Every instance owns its own ``ContextVar``, so two scopes never see
    each other's bindings, even when they wrap the same database. Since
    asyncio copies the context into every task it starts, a binding is
    visible to everything awaited (or spawned) below it and to nothing
    running beside it.

    Example:

    ```python
    scope = TransactionScope("orders")
    with scope.bound(tx):
        assert scope.resolve() is tx
    assert scope.resolve() is None
    ```
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or f"scope_{uuid4().hex[:8]}"
        self._handle: ContextVar[Any] = ContextVar(
            f"transactor:{self.name}", default=None
        )

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    def bind(self, handle: Any) -> Token:
        return self._handle.set(handle)

    def reset(self, token: Token) -> None:
        self._handle.reset(token)

    @contextmanager
    def bound(self, handle: Any) -> Iterator[Any]:
        token = self.bind(handle)
        try:
            yield handle
        finally:
            self.reset(token)

    def resolve(self, context: Optional[Context] = None) -> Any:
        """Get the handle bound in this scope

        Args:
            context (Context, optional): Context to read from. Defaults to
                the current context.

        Returns:
            Any: The bound handle, or `None` outside of any transaction
        """
        if context is not None:
            return context.get(self._handle)
        return self._handle.get()

    def current(self, root: Any) -> Scope:
        handle = self.resolve()
        if handle is None:
            return Root(root)
        return Nested(handle)
