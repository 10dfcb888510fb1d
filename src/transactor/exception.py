class TransactorError(Exception):
    """Base exception for everything raised by transactor"""

    pass
