"""
Output modes selected once per invocation.
"""
import enum
from typing import NamedTuple, Optional

from odbc_tools import config


class OutputKind(enum.Enum):
    SCHEMA = "schema"
    DEBUG = "debug"
    VERTICAL = "vertical"
    JSON_ARRAY = "json-array"
    AVRO_RECORD = "avro-record"


class AvroRecordOptions(NamedTuple):
    """Flags of the avro-record output."""
    show_schema_only: bool = False
    deflate: bool = False
    reformat_json: bool = False
    reformat_json_pretty: bool = False
    timestamp_millis: bool = False
    schema_name: str = config.DEFAULT_SCHEMA_NAME
    raw_records: bool = False


class OutputMode(NamedTuple):
    """Output kind plus the options only the Avro output has."""
    kind: OutputKind
    avro: Optional[AvroRecordOptions] = None

    @classmethod
    def avro_record(cls, **options) -> "OutputMode":
        return cls(OutputKind.AVRO_RECORD, AvroRecordOptions(**options))
