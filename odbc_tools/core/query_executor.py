"""
Query execution against ODBC data sources.

This module drives connect, prepare/describe, execute and fetch through
pyodbc (or any DB-API connection with a compatible cursor) and exposes
each result as a schema plus a lazy, single-pass row stream.
"""
import datetime
import decimal
import enum
import logging
import uuid
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from odbc_tools.core.errors import (
    DatabaseConnectionError,
    DescribeError,
    ExecutionError,
    FetchError,
    InitializationError,
    PrepareError,
)
from odbc_tools.core.parameter_binder import BoundStatement, bind_parameters
from odbc_tools.core.script_splitter import split_queries

logger = logging.getLogger(__name__)


class DatumType(enum.Enum):
    """Logical type of the values in a result column."""
    BIT = "Bit"
    INTEGER = "Integer"
    BIGINT = "Bigint"
    FLOAT = "Float"
    DOUBLE = "Double"
    DECIMAL = "Decimal"
    STRING = "String"
    JSON = "Json"
    BYTES = "Bytes"
    DATE = "Date"
    TIME = "Time"
    TIMESTAMP = "Timestamp"


# Python type codes reported in cursor.description
_TYPE_CODES = {
    bool: DatumType.BIT,
    int: DatumType.BIGINT,
    float: DatumType.DOUBLE,
    decimal.Decimal: DatumType.DECIMAL,
    str: DatumType.STRING,
    uuid.UUID: DatumType.STRING,
    bytes: DatumType.BYTES,
    bytearray: DatumType.BYTES,
    datetime.datetime: DatumType.TIMESTAMP,
    datetime.date: DatumType.DATE,
    datetime.time: DatumType.TIME,
}

# Largest precisions that still fit the narrower numeric types
INTEGER_MAX_PRECISION = 10
FLOAT_MAX_PRECISION = 24


class ColumnSchema:
    """Description of one result column."""

    def __init__(self, name: str, datum_type: DatumType, native_type: str, nullable: bool):
        self.name = name
        self.datum_type = datum_type
        self.native_type = native_type
        self.nullable = nullable

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ColumnSchema):
            return NotImplemented
        return (self.name, self.datum_type, self.native_type, self.nullable) == \
            (other.name, other.datum_type, other.native_type, other.nullable)

    def __repr__(self) -> str:
        return (f"ColumnSchema(name={self.name!r}, datum_type={self.datum_type.value}, "
                f"native_type={self.native_type!r}, nullable={self.nullable})")


def describe_column(description: Sequence[Any], json_columns: Iterable[str] = ()) -> ColumnSchema:
    """
    Build a ColumnSchema from one DB-API cursor.description entry.

    Args:
        description: (name, type_code, display_size, internal_size,
            precision, scale, null_ok)
        json_columns: Names of string columns that hold JSON documents

    Returns:
        ColumnSchema for the column
    """
    name, type_code, _display_size, internal_size, precision, scale, null_ok = tuple(description)[:7]
    datum_type = _TYPE_CODES.get(type_code, DatumType.STRING)

    if datum_type == DatumType.BIGINT and precision is not None and precision <= INTEGER_MAX_PRECISION:
        datum_type = DatumType.INTEGER
    elif datum_type == DatumType.DOUBLE and precision is not None and precision <= FLOAT_MAX_PRECISION:
        datum_type = DatumType.FLOAT
    elif datum_type == DatumType.STRING and name in json_columns:
        datum_type = DatumType.JSON

    type_name = getattr(type_code, "__name__", str(type_code))
    if datum_type == DatumType.DECIMAL:
        native_type = f"{type_name}(precision={precision}, scale={scale})"
    elif datum_type in (DatumType.STRING, DatumType.JSON, DatumType.BYTES):
        native_type = f"{type_name}(size={internal_size})"
    else:
        native_type = type_name

    return ColumnSchema(name, datum_type, native_type, null_ok is not False)


class ResultSet:
    """
    Rows produced by one executed statement.

    Iteration pulls one row per fetch call from the driver. A result set can
    be iterated once and only while its executor's connection is open.
    """

    def __init__(self, executor: "QueryExecutor", cursor: Any, schema: List[ColumnSchema]):
        self.executor = executor
        self.cursor = cursor
        self.schema = schema
        self.row_count = 0
        self._started = False
        self._closed = False

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.schema]

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        if self._started:
            raise FetchError("result set rows can only be iterated once")
        self._started = True
        return self._fetch_rows()

    def _fetch_rows(self) -> Iterator[Tuple[Any, ...]]:
        try:
            # Statements without a result set have nothing to fetch
            if not self.schema:
                return
            while True:
                if self.executor.closed:
                    raise FetchError("connection is closed")
                try:
                    row = self.cursor.fetchone()
                except Exception as e:
                    logger.error(f"Error fetching row {self.row_count}: {str(e)}", exc_info=True)
                    raise FetchError(str(e)) from e
                if row is None:
                    break
                values = tuple(row)
                if len(values) != len(self.schema):
                    raise FetchError(f"row has {len(values)} values but the schema has {len(self.schema)} columns")
                self.row_count += 1
                yield values
            logger.debug(f"Fetched {self.row_count} rows")
        finally:
            self.close()

    def close(self) -> None:
        """Close the underlying cursor."""
        if self._closed:
            return
        self._closed = True
        try:
            self.cursor.close()
        except Exception as e:
            # The cursor is gone with its connection
            logger.warning(f"Error closing cursor: {str(e)}")


class QueryExecutor:
    """
    Runs statements over a single exclusively owned connection.

    Example:
        >>> with QueryExecutor.connect("DSN=test") as executor:
        ...     result = executor.execute("SELECT id FROM users WHERE name = ?", ["alice"])
        ...     for row in result:
        ...         print(row)
    """

    def __init__(self, connection: Any, json_columns: Iterable[str] = ()):
        """
        Initialize an executor around an open connection.

        Args:
            connection: A DB-API compatible connection (normally pyodbc)
            json_columns: Names of string columns that hold JSON documents
        """
        self.connection = connection
        self.json_columns = frozenset(json_columns)
        self.closed = False
        self._current: Optional[ResultSet] = None

    @staticmethod
    def _load_driver_manager() -> Any:
        try:
            import pyodbc
        except ImportError as e:
            logger.error(f"Unable to load pyodbc: {str(e)}")
            raise InitializationError(str(e)) from e
        return pyodbc

    @classmethod
    def list_drivers(cls) -> List[str]:
        """Return the names of the drivers known to the ODBC driver manager."""
        pyodbc = cls._load_driver_manager()
        try:
            drivers = list(pyodbc.drivers())
        except Exception as e:
            logger.error(f"Error listing ODBC drivers: {str(e)}", exc_info=True)
            raise InitializationError(str(e), operation="list drivers") from e
        logger.debug(f"Found {len(drivers)} ODBC drivers")
        return drivers

    @classmethod
    def connect(cls, connection_string: str, json_columns: Iterable[str] = ()) -> "QueryExecutor":
        """
        Connect to a database through the ODBC driver manager.

        Args:
            connection_string: ODBC connection string, e.g. 'DSN=test'
            json_columns: Names of string columns that hold JSON documents

        Returns:
            QueryExecutor owning the new connection
        """
        pyodbc = cls._load_driver_manager()
        try:
            logger.info("Connecting to ODBC data source")
            connection = pyodbc.connect(connection_string, autocommit=True)
        except Exception as e:
            logger.error(f"Failed to connect to database: {str(e)}", exc_info=True)
            raise DatabaseConnectionError(str(e)) from e
        logger.info("Connected to ODBC data source")
        return cls(connection, json_columns=json_columns)

    def __enter__(self) -> "QueryExecutor":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Close the current result set and the connection."""
        if self.closed:
            return
        if self._current is not None:
            self._current.close()
            self._current = None
        self.closed = True
        self.connection.close()
        logger.debug("Closed ODBC connection")

    def _open_cursor(self) -> Any:
        if self.closed:
            raise PrepareError("connection is closed")
        if self._current is not None:
            self._current.close()
            self._current = None
        try:
            return self.connection.cursor()
        except Exception as e:
            logger.error(f"Error allocating statement: {str(e)}", exc_info=True)
            raise PrepareError(str(e)) from e

    def _describe(self, cursor: Any) -> List[ColumnSchema]:
        try:
            description = cursor.description
            if not description:
                return []
            return [describe_column(column, self.json_columns) for column in description]
        except Exception as e:
            logger.error(f"Error describing result set: {str(e)}", exc_info=True)
            raise DescribeError(str(e)) from e

    @staticmethod
    def _run(cursor: Any, bound: BoundStatement, error_type: type) -> None:
        logger.info(f"Executing query: {bound.text}")
        try:
            cursor.execute(bound.text, *bound.parameters)
        except Exception as e:
            logger.error(f"Error executing query: {str(e)}", exc_info=True)
            cursor.close()
            raise error_type(str(e)) from e

    def schema(self, text: str, parameters: Sequence[str] = ()) -> List[ColumnSchema]:
        """
        Describe the columns a statement produces without fetching rows.

        Args:
            text: Statement text
            parameters: Optional text values for the statement's placeholders

        Returns:
            List of ColumnSchema, empty for statements without a result set
        """
        bound = bind_parameters(text, parameters)
        cursor = self._open_cursor()
        self._run(cursor, bound, PrepareError)
        try:
            return self._describe(cursor)
        finally:
            cursor.close()

    def execute(self, text: str, parameters: Sequence[str] = ()) -> ResultSet:
        """
        Execute a statement and return its result set.

        Args:
            text: Statement text
            parameters: Text values bound positionally to '?' placeholders

        Returns:
            ResultSet with the column schema and a lazy row stream
        """
        bound = bind_parameters(text, parameters)
        cursor = self._open_cursor()
        self._run(cursor, bound, ExecutionError)
        try:
            schema = self._describe(cursor)
        except DescribeError:
            cursor.close()
            raise
        self._current = ResultSet(self, cursor, schema)
        return self._current

    def execute_script(self, script: str) -> Iterator[ResultSet]:
        """
        Execute the statements of a script in order.

        Each statement runs after the previous result set was consumed or
        closed. The first failure stops the script.

        Args:
            script: Script text with ';' separated statements

        Yields:
            One ResultSet per statement
        """
        for index, statement in enumerate(split_queries(script)):
            logger.debug(f"Running script statement {index}")
            yield self.execute(statement)
