from .interface import BaseDatabase, BaseTransaction
from .mysql.interface import MysqlDatabase, MysqlTransaction
from .postgres.interface import PostgresDatabase, PostgresTransaction
from .sqlite.interface import SQLiteDatabase, SQLiteTransaction
from .sqlserver.interface import SQLServerDatabase, SQLServerTransaction

__all__ = (
    "BaseDatabase",
    "BaseTransaction",
    "MysqlDatabase",
    "MysqlTransaction",
    "PostgresDatabase",
    "PostgresTransaction",
    "SQLiteDatabase",
    "SQLiteTransaction",
    "SQLServerDatabase",
    "SQLServerTransaction",
)
