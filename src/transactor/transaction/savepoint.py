"""
Savepoint implementation for nested transaction rollback points.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from transactor.base.interface import Transactional

from .interfaces import TransactionError
from .wrapper import TransactionWrapper

logger = logging.getLogger(__name__)


class SavepointTransaction(TransactionWrapper):
    """
    A transaction nested through savepoints.

    Savepoints are named after their nesting depth (``sp_1``, ``sp_2``,
    ...), so two sibling transactions at the same depth reuse the same
    name. Siblings must therefore run one after the other, never
    concurrently under the same parent.

    Compatible with PostgreSQL, MySQL, MariaDB and SQLite.
    """

    savepoint_sql = "SAVEPOINT {name}"
    release_sql: Optional[str] = "RELEASE SAVEPOINT {name}"
    rollback_sql = "ROLLBACK TO SAVEPOINT {name}"

    def __init__(self, tx: Transactional, depth: int = 0) -> None:
        super().__init__(tx)
        self.depth = depth
        self._done = Lock()

    def __str__(self) -> str:
        status = "completed" if self.completed else "active"
        return f"<{self.__class__.__name__} {self.name} ({status})>"

    @property
    def name(self) -> str:
        return self.savepoint_name(self.depth)

    @property
    def completed(self) -> bool:
        """Check if this savepoint was already committed or rolled back"""
        return self._done.locked()

    @staticmethod
    def savepoint_name(depth: int) -> str:
        return f"sp_{depth}"

    async def begin(self) -> Transactional:
        """Create the savepoint of the next nesting level"""
        name = self.savepoint_name(self.depth + 1)
        try:
            await self.tx.execute(self.savepoint_sql.format(name=name))
        except Exception as e:
            raise TransactionError(f"failed to create savepoint: {e}") from e

        logger.debug("Created savepoint %s", name)
        return self.tx

    async def commit(self) -> None:
        """Release this savepoint"""
        if not self._complete():
            return

        if self.release_sql is None:
            return

        try:
            await self.tx.execute(self.release_sql.format(name=self.name))
        except Exception as e:
            raise TransactionError(f"failed to release savepoint: {e}") from e

        logger.debug("Released savepoint %s", self.name)

    async def rollback(self) -> None:
        """Rollback to this savepoint"""
        if not self._complete():
            return

        try:
            await self.tx.execute(self.rollback_sql.format(name=self.name))
        except Exception as e:
            raise TransactionError(
                f"failed to rollback to savepoint: {e}"
            ) from e

        logger.debug("Rolled back to savepoint %s", self.name)

    def _complete(self) -> bool:
        # Non-blocking acquire is an atomic test-and-set
        if self._done.acquire(blocking=False):
            return True

        logger.debug("Savepoint %s already completed", self.name)
        return False


class NoReleaseSavepointTransaction(SavepointTransaction):
    """Savepoints for engines that release them implicitly, like Oracle"""

    release_sql = None


class MSSQLSavepointTransaction(SavepointTransaction):
    """Savepoints using the Microsoft SQL Server syntax"""

    savepoint_sql = "SAVE TRANSACTION {name}"
    release_sql = None
    rollback_sql = "ROLLBACK TRANSACTION {name}"
