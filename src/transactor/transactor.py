from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncContextManager,
    AsyncIterator,
    Awaitable,
    Callable,
    Optional,
    TypeVar,
)

from transactor.base.interface import Beginnable, Queryable
from transactor.exception import TransactorError
from transactor.scope import TransactionScope
from transactor.transaction import (
    BeginTransactionError,
    CommitTransactionError,
    NestedTransactionStrategy,
    nested_transactions_none,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AbstractTransactor(ABC):
    """Interface shared by every transactor"""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Queryable]:
        ...

    @abstractmethod
    def get_db(self) -> Queryable:
        ...

    @abstractmethod
    def is_within_transaction(self) -> bool:
        ...

    async def within_transaction(
        self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Run a coroutine function inside a transaction

        Anything awaited by `fn` that calls `get_db` receives the
        transaction instead of the root database.

        Args:
            fn (Callable[..., Awaitable[T]]): The unit of work
            *args: Positional arguments passed to `fn`
            **kwargs: Keyword arguments passed to `fn`

        Returns:
            T: Whatever `fn` returned, once the transaction is committed
        """
        async with self.transaction():
            return await fn(*args, **kwargs)


class Transactor(AbstractTransactor):
    """Runs units of work inside (possibly nested) transactions.

    Example:

    ```python
    transactor = Transactor(db, nested_transactions_savepoints)

    async def transfer():
        await transactor.get_db().execute(
            "UPDATE balances SET amount = amount - 10 WHERE id = 1"
        )

    await transactor.within_transaction(transfer)
    ```
    """

    def __init__(
        self,
        db: Beginnable,
        nested_transactions: NestedTransactionStrategy = (
            nested_transactions_none
        ),
        *,
        name: Optional[str] = None,
    ) -> None:
        """Initializer for Transactor instance

        Args:
            db (Beginnable): Root database handle, usually a connection
                pool. Used whenever no transaction is active.
            nested_transactions (NestedTransactionStrategy, optional):
                What to do when a transaction is started inside another
                one. Defaults to `nested_transactions_none`.
            name (str, optional): Name of the transaction scope, only used
                for debugging. Defaults to a random name.

        Raises:
            TransactorError: If `db` cannot begin transactions
        """
        if not isinstance(db, Beginnable):
            raise TransactorError(
                f"{db!r} cannot be used as a root database: "
                "it does not support begin()"
            )

        self.db = db
        self.nested_transactions = nested_transactions
        self._scope = TransactionScope(name)

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._scope.name}>"

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Queryable]:
        """Open a transaction for the duration of the block

        The transaction is committed when the block exits normally, and
        rolled back when it raises. If the rollback fails as well, the
        original exception is the one propagated.

        Yields:
            Queryable: The handle bound for the duration of the block

        Raises:
            BeginTransactionError: If the transaction could not be started,
                in which case the block does not run
            CommitTransactionError: If the transaction could not be
                committed
        """
        scope = self._scope.current(self.db)

        try:
            tx = await scope.handle.begin()
        except Exception as e:
            raise BeginTransactionError(
                f"failed to begin transaction: {e}"
            ) from e

        handle, completion = self.nested_transactions(scope, tx)
        logger.debug("Began transaction %s in %s", handle, self)

        token = self._scope.bind(handle)
        try:
            yield handle
        except BaseException:
            self._scope.reset(token)
            try:
                await completion.rollback()
            except Exception as rollback_error:
                # The transaction will expire on its own
                logger.warning(
                    "Failed to rollback transaction %s: %s",
                    handle,
                    rollback_error,
                )
            else:
                logger.debug("Rolled back transaction %s", handle)
            raise

        self._scope.reset(token)
        try:
            await completion.commit()
        except Exception as e:
            logger.error("Failed to commit transaction %s: %s", handle, e)
            raise CommitTransactionError(
                f"failed to commit transaction: {e}"
            ) from e

        logger.debug("Committed transaction %s", handle)

    def get_db(self) -> Queryable:
        """Get the handle to run queries with

        Call it at the point of running a query rather than holding on to
        the result, so that the query joins the active transaction.

        Returns:
            Queryable: The active transaction, or the root database
        """
        handle = self._scope.resolve()
        if handle is None:
            return self.db
        return handle

    def is_within_transaction(self) -> bool:
        """Check if a transaction of this transactor is active

        Each transactor keeps its own scope: a transaction opened by
        another transactor, even over the same database, does not count.
        """
        return self._scope.resolve() is not None
