"""
Nested transaction strategies and the handles they bind.
"""

from .interfaces import (
    BeginTransactionError,
    CommitTransactionError,
    NestedTransactionsNotSupportedError,
    TransactionError,
)
from .savepoint import (
    MSSQLSavepointTransaction,
    NoReleaseSavepointTransaction,
    SavepointTransaction,
)
from .strategy import (
    NestedTransactionStrategy,
    nested_transactions_flattened,
    nested_transactions_mssql,
    nested_transactions_none,
    nested_transactions_savepoints,
    nested_transactions_savepoints_no_release,
)
from .wrapper import (
    FlattenedTransaction,
    NoNestedTransaction,
    TransactionWrapper,
)

__all__ = [
    "BeginTransactionError",
    "CommitTransactionError",
    "FlattenedTransaction",
    "MSSQLSavepointTransaction",
    "NestedTransactionStrategy",
    "NestedTransactionsNotSupportedError",
    "NoNestedTransaction",
    "NoReleaseSavepointTransaction",
    "SavepointTransaction",
    "TransactionError",
    "TransactionWrapper",
    "nested_transactions_flattened",
    "nested_transactions_mssql",
    "nested_transactions_none",
    "nested_transactions_savepoints",
    "nested_transactions_savepoints_no_release",
]
