"""
Result rendering for each output mode.

Every output mode has exactly one renderer. A renderer receives the result
columns and a lazy row stream and writes the formatted output to a stream.
"""
import datetime
import decimal
import json
import logging
import sys
import uuid
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterable, List, Optional, Sequence, TextIO

from odbc_tools import config
from odbc_tools.core.avro_config import codec_for, make_avro_configuration
from odbc_tools.core.avro_writer import AvroRecordEncoder, canonical_schema
from odbc_tools.core.errors import SerializationError
from odbc_tools.core.output_mode import AvroRecordOptions, OutputKind, OutputMode
from odbc_tools.core.query_executor import ColumnSchema, QueryExecutor

logger = logging.getLogger(__name__)


def display_value(value: Any) -> str:
    """Text form of a value for the tabular outputs."""
    if value is None:
        return config.NULL_MARKER
    return str(value)


class ResultRenderer(ABC):
    """
    Base class for output renderers.

    Renderers that only need the column schema set fetches_rows to False;
    they are given the described columns and never cause a fetch.
    """

    fetches_rows = True

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write_line(self, line: str = "") -> None:
        self.stream.write(line + "\n")

    @abstractmethod
    def render(self, columns: List[ColumnSchema], rows: Iterable[Sequence[Any]]) -> None:
        """
        Write the output for one result set.

        Args:
            columns: Result set columns
            rows: Lazy row stream aligned with columns
        """
        pass

    def run(self, executor: QueryExecutor, text: str, parameters: Sequence[str] = ()) -> None:
        """Execute (or only describe) a statement and render the result."""
        if self.fetches_rows:
            result = executor.execute(text, parameters)
            self.render(result.schema, result)
        else:
            self.render(executor.schema(text, parameters), ())
        self.stream.flush()


class SchemaRenderer(ResultRenderer):
    """Prints one tab separated line per result column."""

    fetches_rows = False
    HEADER = "column name\tdatum type\tODBC type\tnullable"

    def render(self, columns, rows) -> None:
        self.write_line(self.HEADER)
        for column in columns:
            nullable = "true" if column.nullable else "false"
            self.write_line(f"{column.name}\t{column.datum_type.value}\t{column.native_type}\t{nullable}")


class DebugRenderer(ResultRenderer):
    """Prints the repr of every row's values."""

    def render(self, columns, rows) -> None:
        for row in rows:
            self.write_line(repr(list(row)))


class VerticalRenderer(ResultRenderer):
    """Prints one 'row column value' line per column with rows separated by blank lines."""

    def render(self, columns, rows) -> None:
        names = [column.name for column in columns]
        width = max((len(name) for name in names), default=0)

        for i, row in enumerate(rows):
            if i > 0:
                self.write_line()
            for name, value in zip(names, row):
                self.write_line(f"{i:<3} {name:<{width}} {display_value(value)}")


def json_default(value: Any) -> Any:
    """Serialize values the json module does not handle natively."""
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, uuid.UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonArrayRenderer(ResultRenderer):
    """Prints every row as a compact JSON array."""

    def render(self, columns, rows) -> None:
        for row in rows:
            try:
                line = json.dumps(list(row), default=json_default, separators=(",", ":"),
                                  ensure_ascii=False, allow_nan=False)
            except (TypeError, ValueError) as e:
                logger.error(f"Error serializing row to JSON: {str(e)}")
                raise SerializationError(str(e), operation="serialize JSON") from e
            self.write_line(line)


class AvroSchemaRenderer(ResultRenderer):
    """Prints the canonical form of the Avro schema derived from the result columns."""

    fetches_rows = False

    def __init__(self, configuration, stream: Optional[TextIO] = None):
        super().__init__(stream)
        self.configuration = configuration

    def render(self, columns, rows) -> None:
        self.write_line(canonical_schema(columns, self.configuration))


class AvroRecordRenderer(ResultRenderer):
    """Streams the rows as Avro binary data."""

    def __init__(self, configuration, codec, raw_records: bool = False, stream: Optional[BinaryIO] = None):
        super().__init__(stream or sys.stdout.buffer)
        self.configuration = configuration
        self.codec = codec
        self.raw_records = raw_records

    def render(self, columns, rows) -> None:
        encoder = AvroRecordEncoder(columns, self.configuration)
        if self.raw_records:
            encoder.write_records(self.stream, rows)
        else:
            encoder.write_container(self.stream, rows, self.codec)
        self.stream.flush()


class ScriptRenderer(ResultRenderer):
    """Tabular text for scripts; each line is prefixed with statement and row index."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__(stream)
        self.statement_index = 0

    def render(self, columns, rows) -> None:
        if self.statement_index > 0:
            self.write_line()
        names = [column.name for column in columns]
        width = max((len(name) for name in names), default=0)

        for i, row in enumerate(rows):
            if i > 0:
                self.write_line()
            for name, value in zip(names, row):
                self.write_line(f"{self.statement_index:>3} {i:<3} {name:<{width}} {display_value(value)}")
        self.statement_index += 1

    def run_script(self, executor: QueryExecutor, script: str) -> int:
        """Execute every statement of a script and render each result; returns the statement count."""
        for result in executor.execute_script(script):
            self.render(result.schema, result)
        self.stream.flush()
        return self.statement_index


def create_renderer(
    output_mode: OutputMode,
    stream: Optional[TextIO] = None,
    binary_stream: Optional[BinaryIO] = None
) -> ResultRenderer:
    """
    Select the renderer for an output mode.

    Args:
        output_mode: Output mode of this invocation
        stream: Text output stream (default: standard output)
        binary_stream: Binary output stream for Avro data (default: standard output)

    Returns:
        ResultRenderer for the mode
    """
    kind = output_mode.kind
    if kind == OutputKind.SCHEMA:
        return SchemaRenderer(stream)
    if kind == OutputKind.DEBUG:
        return DebugRenderer(stream)
    if kind == OutputKind.VERTICAL:
        return VerticalRenderer(stream)
    if kind == OutputKind.JSON_ARRAY:
        return JsonArrayRenderer(stream)
    if kind == OutputKind.AVRO_RECORD:
        options = output_mode.avro or AvroRecordOptions()
        configuration = make_avro_configuration(
            options.reformat_json,
            options.reformat_json_pretty,
            options.timestamp_millis,
            options.schema_name
        )
        if options.show_schema_only:
            return AvroSchemaRenderer(configuration, stream)
        return AvroRecordRenderer(configuration, codec_for(options.deflate), options.raw_records, binary_stream)
    raise ValueError(f"Unknown output mode: {kind}")
