"""
Avro schema derivation and record encoding for query results.

Schemas are derived from the result columns and an AvroConfiguration.
Rows are written with fastavro, either as an object container file or as
schemaless binary records written back to back.
"""
import datetime
import json
import logging
import re
from typing import Any, BinaryIO, Callable, Dict, Iterable, List, Sequence

import fastavro
from fastavro.schema import to_parsing_canonical_form

from odbc_tools import config
from odbc_tools.core.avro_config import AvroConfiguration, Codec, ReformatJson, TimestampFormat
from odbc_tools.core.errors import QueryToolError, SerializationError
from odbc_tools.core.query_executor import ColumnSchema, DatumType

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")

EPOCH = datetime.datetime(1970, 1, 1)

_PRIMITIVE_TYPES = {
    DatumType.BIT: "boolean",
    DatumType.INTEGER: "int",
    DatumType.BIGINT: "long",
    DatumType.FLOAT: "float",
    DatumType.DOUBLE: "double",
    DatumType.DECIMAL: "string",
    DatumType.STRING: "string",
    DatumType.JSON: "string",
    DatumType.BYTES: "bytes",
    DatumType.DATE: "string",
    DatumType.TIME: "string",
    DatumType.TIMESTAMP: "string",
}

TIMESTAMP_MILLIS_TYPE = {"type": "long", "logicalType": "timestamp-millis"}


def avro_field_names(columns: Sequence[ColumnSchema]) -> List[str]:
    """
    Turn column names into unique, valid Avro field names.

    Invalid characters become '_', a leading digit gets a '_' prefix and
    repeated names get '_2', '_3', ... suffixes.
    """
    names = []
    seen = set()
    for column in columns:
        name = _INVALID_NAME_CHARS.sub("_", column.name) or "_"
        if name[0].isdigit():
            name = "_" + name
        candidate = name
        suffix = 2
        while candidate in seen:
            candidate = f"{name}_{suffix}"
            suffix += 1
        seen.add(candidate)
        names.append(candidate)
    return names


def _field_type(column: ColumnSchema, configuration: AvroConfiguration) -> Any:
    if (column.datum_type == DatumType.TIMESTAMP
            and configuration.timestamp_format == TimestampFormat.MILLISECONDS_SINCE_EPOCH):
        avro_type = dict(TIMESTAMP_MILLIS_TYPE)
    else:
        avro_type = _PRIMITIVE_TYPES[column.datum_type]
    if column.nullable:
        return ["null", avro_type]
    return avro_type


def derive_avro_schema(columns: Sequence[ColumnSchema], configuration: AvroConfiguration) -> Dict[str, Any]:
    """
    Derive an Avro record schema from result columns.

    Args:
        columns: Result set columns
        configuration: Avro encoding options

    Returns:
        Avro schema as a dictionary
    """
    fields = [
        {"name": name, "type": _field_type(column, configuration)}
        for name, column in zip(avro_field_names(columns), columns)
    ]
    return {"type": "record", "name": configuration.schema_name, "fields": fields}


def parse_avro_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Parse a derived schema, reporting invalid schemas as SerializationError."""
    try:
        return fastavro.parse_schema(schema)
    except Exception as e:
        logger.error(f"Invalid Avro schema {schema}: {str(e)}")
        raise SerializationError(str(e), operation="derive Avro schema") from e


def canonical_schema(columns: Sequence[ColumnSchema], configuration: AvroConfiguration) -> str:
    """Return the parsing canonical form of the derived schema."""
    schema = derive_avro_schema(columns, configuration)
    parse_avro_schema(schema)
    return to_parsing_canonical_form(schema)


def timestamp_to_millis(value: datetime.datetime) -> int:
    """Milliseconds since the Unix epoch; naive timestamps are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    delta = value - EPOCH
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


def _to_text(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _timestamp_to_text(value: Any) -> str:
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=" ")
    return str(value)


def _json_converter(reformat: ReformatJson) -> Callable[[Any], str]:
    indent = config.DEFAULT_JSON_INDENT if reformat == ReformatJson.PRETTY else None
    separators = None if indent else (",", ":")

    def convert(value: Any) -> str:
        return json.dumps(json.loads(value), indent=indent, separators=separators,
                          ensure_ascii=False, allow_nan=False)

    return convert


def _value_converter(column: ColumnSchema, configuration: AvroConfiguration) -> Callable[[Any], Any]:
    datum_type = column.datum_type
    if datum_type == DatumType.BIT:
        return bool
    if datum_type in (DatumType.INTEGER, DatumType.BIGINT):
        return int
    if datum_type in (DatumType.FLOAT, DatumType.DOUBLE):
        return float
    if datum_type == DatumType.BYTES:
        return bytes
    if datum_type == DatumType.JSON and configuration.reformat_json is not None:
        return _json_converter(configuration.reformat_json)
    if datum_type == DatumType.TIMESTAMP:
        if configuration.timestamp_format == TimestampFormat.MILLISECONDS_SINCE_EPOCH:
            return timestamp_to_millis
        return _timestamp_to_text
    return _to_text


class AvroRecordEncoder:
    """Converts result rows into records matching the derived schema."""

    def __init__(self, columns: Sequence[ColumnSchema], configuration: AvroConfiguration):
        self.columns = list(columns)
        self.configuration = configuration
        self.schema = parse_avro_schema(derive_avro_schema(self.columns, configuration))
        self.field_names = avro_field_names(self.columns)
        self._converters = [_value_converter(column, configuration) for column in self.columns]

    def encode(self, row: Sequence[Any]) -> Dict[str, Any]:
        record = {}
        for name, converter, value in zip(self.field_names, self._converters, row):
            if value is None:
                record[name] = None
                continue
            try:
                record[name] = converter(value)
            except (TypeError, ValueError) as e:
                logger.error(f"Cannot encode value of column '{name}': {str(e)}")
                raise SerializationError(f"column '{name}': {str(e)}", operation="encode Avro value") from e
        return record

    def records(self, rows: Iterable[Sequence[Any]]) -> Iterable[Dict[str, Any]]:
        for row in rows:
            yield self.encode(row)

    def write_container(self, stream: BinaryIO, rows: Iterable[Sequence[Any]], codec: Codec = Codec.NULL) -> None:
        """Write rows as an Avro object container file."""
        logger.debug(f"Writing Avro container with codec '{codec.value}'")
        try:
            fastavro.writer(stream, self.schema, self.records(rows), codec=codec.value)
        except QueryToolError:
            raise
        except Exception as e:
            logger.error(f"Error writing Avro container: {str(e)}", exc_info=True)
            raise SerializationError(str(e), operation="write query result set as Avro data") from e

    def write_records(self, stream: BinaryIO, rows: Iterable[Sequence[Any]]) -> int:
        """Write rows as schemaless binary records, returning the record count."""
        count = 0
        try:
            for record in self.records(rows):
                fastavro.schemaless_writer(stream, self.schema, record)
                count += 1
        except QueryToolError:
            raise
        except Exception as e:
            logger.error(f"Error writing Avro record {count}: {str(e)}", exc_info=True)
            raise SerializationError(str(e), operation="write query result set as Avro data") from e
        logger.debug(f"Wrote {count} Avro records")
        return count
