"""
Core query pipeline: splitting, binding, execution and rendering
"""
from odbc_tools.core.errors import (
    QueryToolError, InitializationError, DatabaseConnectionError, PrepareError,
    DescribeError, BindCountMismatchError, ExecutionError, FetchError,
    SerializationError, SplitError, UnterminatedQuoteError
)
from odbc_tools.core.script_splitter import split_queries, count_placeholders
from odbc_tools.core.parameter_binder import bind_parameters, BoundStatement
from odbc_tools.core.query_executor import QueryExecutor, ResultSet, ColumnSchema, DatumType
from odbc_tools.core.avro_config import (
    AvroConfiguration, AvroConfigurationBuilder, ReformatJson, TimestampFormat,
    Codec, make_avro_configuration, codec_for
)
from odbc_tools.core.output_mode import OutputMode, OutputKind, AvroRecordOptions
from odbc_tools.core.renderers import create_renderer, ResultRenderer, ScriptRenderer
