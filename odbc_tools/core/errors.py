"""
Error types raised by the ODBC tools core.

Every error is fatal to the invocation. Each one names the operation that
was attempted so the command line can report "Failed to <operation>".
"""
from typing import Optional


class QueryToolError(Exception):
    """Base class for all query pipeline failures."""

    operation = "run query"

    def __init__(self, cause: str, operation: Optional[str] = None):
        if operation is not None:
            self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {self.operation}: {cause}")


class InitializationError(QueryToolError):
    operation = "initialize ODBC"


class DatabaseConnectionError(QueryToolError):
    operation = "connect to database"


class PrepareError(QueryToolError):
    operation = "prepare query"


class DescribeError(QueryToolError):
    operation = "get prepared statement schema"


class BindCountMismatchError(QueryToolError):
    """Raised when the parameter count differs from the placeholder count."""

    operation = "bind parameters"

    def __init__(self, expected: int, supplied: int):
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"statement has {expected} placeholder(s) but {supplied} parameter(s) were supplied"
        )


class ExecutionError(QueryToolError):
    operation = "execute query"


class FetchError(QueryToolError):
    operation = "fetch row data"


class SerializationError(QueryToolError):
    operation = "serialize result"


class SplitError(QueryToolError):
    operation = "split queries"


class UnterminatedQuoteError(SplitError):
    """Raised when a script ends inside a quoted literal."""

    def __init__(self, quote: str, position: int):
        self.quote = quote
        self.position = position
        super().__init__(f"unterminated {quote} quote starting at offset {position}")
