from __future__ import annotations

from typing import Any, Callable, Tuple, Type

from transactor.base.interface import Transactional
from transactor.scope import Nested, Root, Scope

from .savepoint import (
    MSSQLSavepointTransaction,
    NoReleaseSavepointTransaction,
    SavepointTransaction,
)
from .wrapper import FlattenedTransaction, NoNestedTransaction

NestedTransactionStrategy = Callable[
    [Scope, Transactional], Tuple[Any, Transactional]
]
"""Decide which handle is bound in a new transaction scope and which one
gets committed or rolled back when the scope ends.

Called with the scope the transaction was begun from (`Root` for the
outermost transaction, `Nested` for a wrapper made by the same strategy)
and the transaction returned by `begin()`.
"""


def _unsupported(scope: Scope) -> TypeError:
    handle = getattr(scope, "handle", scope)
    return TypeError(
        f"unsupported handle for this nested transactions strategy: "
        f"{handle!r}"
    )


def nested_transactions_none(
    scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    """Prevent the use of nested transactions"""
    if isinstance(scope, Root):
        return NoNestedTransaction(tx), tx

    if isinstance(scope, Nested) and isinstance(
        scope.handle, NoNestedTransaction
    ):
        return scope.handle, scope.handle

    raise _unsupported(scope)


def nested_transactions_flattened(
    scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    """Run nested transactions inside the outermost one, without
    savepoints.

    Must not be used when intermediate changes need to be kept or rolled
    back on their own. Compatible with PostgreSQL, MySQL, MariaDB and
    SQLite.
    """
    if isinstance(scope, Root):
        return FlattenedTransaction(tx), tx

    if isinstance(scope, Nested) and isinstance(
        scope.handle, FlattenedTransaction
    ):
        return scope.handle, scope.handle

    raise _unsupported(scope)


def _savepoints(
    wrapper: Type[SavepointTransaction], scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    if isinstance(scope, Root):
        return wrapper(tx), tx

    if isinstance(scope, Nested) and type(scope.handle) is wrapper:
        nested = wrapper(tx, depth=scope.handle.depth + 1)
        return nested, nested

    raise _unsupported(scope)


def nested_transactions_savepoints(
    scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    """Nest transactions with savepoints.

    Compatible with PostgreSQL, MySQL, MariaDB and SQLite.
    """
    return _savepoints(SavepointTransaction, scope, tx)


def nested_transactions_savepoints_no_release(
    scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    """Nest transactions with savepoints that are never released
    explicitly, for engines such as Oracle."""
    return _savepoints(NoReleaseSavepointTransaction, scope, tx)


def nested_transactions_mssql(
    scope: Scope, tx: Transactional
) -> Tuple[Any, Transactional]:
    """Nest transactions with Microsoft SQL Server savepoints"""
    return _savepoints(MSSQLSavepointTransaction, scope, tx)
