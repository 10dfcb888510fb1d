from transactor.exception import TransactorError


class TransactionError(TransactorError):
    """Base exception for transaction errors"""

    pass


class BeginTransactionError(TransactionError):
    """Raised when a transaction (or savepoint) could not be started"""

    pass


class CommitTransactionError(TransactionError):
    """Raised when a transaction (or savepoint) could not be committed"""

    pass


class NestedTransactionsNotSupportedError(TransactionError):
    """Raised when beginning a transaction inside a transaction that
    does not allow nesting"""

    pass
