"""
Avro encoding options.

The configuration decides how JSON columns and timestamps are represented
in Avro output. The compression codec is chosen separately by the caller.
"""
import enum
import logging
from typing import NamedTuple, Optional

from odbc_tools import config

logger = logging.getLogger(__name__)


class ReformatJson(enum.Enum):
    """How JSON columns are re-serialized."""
    COMPACT = "compact"
    PRETTY = "pretty"


class TimestampFormat(enum.Enum):
    """Representation of timestamp columns."""
    DEFAULT_STRING = "string"
    MILLISECONDS_SINCE_EPOCH = "millis"


class Codec(enum.Enum):
    """Avro object container compression codec (fastavro codec names)."""
    NULL = "null"
    DEFLATE = "deflate"


class AvroConfiguration(NamedTuple):
    """Immutable Avro encoding options."""
    reformat_json: Optional[ReformatJson] = None
    timestamp_format: TimestampFormat = TimestampFormat.DEFAULT_STRING
    schema_name: str = config.DEFAULT_SCHEMA_NAME


class AvroConfigurationBuilder:
    """Step-by-step construction of an AvroConfiguration."""

    def __init__(self):
        self._reformat_json: Optional[ReformatJson] = None
        self._timestamp_format = TimestampFormat.DEFAULT_STRING
        self._schema_name = config.DEFAULT_SCHEMA_NAME

    def with_reformat_json(self, reformat_json: Optional[ReformatJson]) -> "AvroConfigurationBuilder":
        self._reformat_json = reformat_json
        return self

    def with_timestamp_format(self, timestamp_format: TimestampFormat) -> "AvroConfigurationBuilder":
        self._timestamp_format = timestamp_format
        return self

    def with_schema_name(self, schema_name: str) -> "AvroConfigurationBuilder":
        self._schema_name = schema_name
        return self

    def build(self) -> AvroConfiguration:
        return AvroConfiguration(self._reformat_json, self._timestamp_format, self._schema_name)


def make_avro_configuration(
    reformat_json: bool,
    reformat_json_pretty: bool,
    timestamp_millis: bool,
    schema_name: str = config.DEFAULT_SCHEMA_NAME
) -> AvroConfiguration:
    """
    Build the Avro configuration from command line flags.

    Pretty reformatting wins over compact; with neither flag JSON columns
    are written as the text the database returned.

    Args:
        reformat_json: Parse and re-serialize JSON columns
        reformat_json_pretty: Use indented JSON when reformatting
        timestamp_millis: Write timestamps as milliseconds since the epoch
        schema_name: Name of the Avro record schema

    Returns:
        AvroConfiguration
    """
    if reformat_json_pretty:
        reformat = ReformatJson.PRETTY
    elif reformat_json:
        reformat = ReformatJson.COMPACT
    else:
        reformat = None

    if timestamp_millis:
        timestamp_format = TimestampFormat.MILLISECONDS_SINCE_EPOCH
    else:
        timestamp_format = TimestampFormat.DEFAULT_STRING

    configuration = AvroConfigurationBuilder() \
        .with_reformat_json(reformat) \
        .with_timestamp_format(timestamp_format) \
        .with_schema_name(schema_name) \
        .build()
    logger.debug(f"Using {configuration}")
    return configuration


def codec_for(deflate: bool) -> Codec:
    """Select the container codec."""
    return Codec.DEFLATE if deflate else Codec.NULL
