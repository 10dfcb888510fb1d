from importlib.metadata import version

from .base import Beginnable, Queryable, Transactional
from .exception import TransactorError
from .fake import FakeTransactor
from .scope import Nested, Root, TransactionScope
from .sql.mysql.interface import MysqlDatabase
from .sql.postgres.interface import PostgresDatabase
from .sql.sqlite.interface import SQLiteDatabase
from .sql.sqlserver.interface import SQLServerDatabase
from .transaction import (
    BeginTransactionError,
    CommitTransactionError,
    NestedTransactionsNotSupportedError,
    NestedTransactionStrategy,
    TransactionError,
    nested_transactions_flattened,
    nested_transactions_mssql,
    nested_transactions_none,
    nested_transactions_savepoints,
    nested_transactions_savepoints_no_release,
)
from .transactor import AbstractTransactor, Transactor

__version__ = version("transactor")

__all__ = (
    "nested_transactions_flattened",
    "nested_transactions_mssql",
    "nested_transactions_none",
    "nested_transactions_savepoints",
    "nested_transactions_savepoints_no_release",
    "AbstractTransactor",
    "BeginTransactionError",
    "Beginnable",
    "CommitTransactionError",
    "FakeTransactor",
    "MysqlDatabase",
    "Nested",
    "NestedTransactionStrategy",
    "NestedTransactionsNotSupportedError",
    "PostgresDatabase",
    "Queryable",
    "Root",
    "SQLiteDatabase",
    "SQLServerDatabase",
    "Transactional",
    "TransactionError",
    "TransactionScope",
    "Transactor",
    "TransactorError",
)
