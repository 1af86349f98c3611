#!/usr/bin/env python3
"""
ODBC Tools - CLI for querying ODBC data sources.

Each query subcommand takes a connection string, an optional query (absent
or '-' reads standard input) and parameter values bound to the query's '?'
placeholders in order.
"""
import logging
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape

from odbc_tools import __version__, config
from odbc_tools.core.errors import QueryToolError
from odbc_tools.core.output_mode import OutputKind, OutputMode
from odbc_tools.core.query_executor import QueryExecutor
from odbc_tools.core.renderers import ScriptRenderer, create_renderer
from odbc_tools.utils import resolve_text, setup_logging

# Diagnostics go to standard error, results to standard output
console = Console(stderr=True)

logger = logging.getLogger(__name__)


def fail(error: Exception) -> None:
    """Report a fatal error and terminate with a non-zero status."""
    logger.debug(f"Terminating after error: {str(error)}", exc_info=True)
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}", highlight=False, soft_wrap=True)
    sys.exit(1)


def run_query(connection_string: str, query: Optional[str], parameters: Tuple[str, ...],
              output_mode: OutputMode, json_columns: Tuple[str, ...] = ()) -> None:
    """Connect, run one statement and render it per the output mode."""
    try:
        renderer = create_renderer(
            output_mode,
            stream=click.get_text_stream("stdout"),
            binary_stream=click.get_binary_stream("stdout")
        )
        text = resolve_text(query)
        with QueryExecutor.connect(connection_string, json_columns=json_columns) as executor:
            renderer.run(executor, text, parameters)
    except QueryToolError as e:
        fail(e)


def query_arguments(function):
    """Positional arguments shared by the query subcommands."""
    function = click.argument("parameters", nargs=-1)(function)
    function = click.argument("query", required=False)(function)
    function = click.argument("connection_string")(function)
    return function


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write log records to this file')
def cli(verbose: bool, log_file: Optional[str]):
    """
    ODBC Tools - run SQL against ODBC data sources.

    Results are written to standard output as text, JSON arrays or Avro
    data. QUERY may be omitted or given as '-' to read it from standard
    input; PARAMETERS are bound to the query's '?' placeholders in order.
    """
    setup_logging(verbose, log_file)


@cli.command('list-drivers')
def list_drivers():
    """List the drivers known to the ODBC driver manager."""
    try:
        for driver in QueryExecutor.list_drivers():
            click.echo(driver)
    except QueryToolError as e:
        fail(e)


@cli.command()
@query_arguments
def schema(connection_string: str, query: Optional[str], parameters: Tuple[str, ...]):
    """Print the schema of the query result without fetching rows."""
    run_query(connection_string, query, parameters, OutputMode(OutputKind.SCHEMA))


@cli.command()
@query_arguments
def debug(connection_string: str, query: Optional[str], parameters: Tuple[str, ...]):
    """Print the values of every row."""
    run_query(connection_string, query, parameters, OutputMode(OutputKind.DEBUG))


@cli.command()
@query_arguments
def vertical(connection_string: str, query: Optional[str], parameters: Tuple[str, ...]):
    """Print records in vertical form, one line per column."""
    run_query(connection_string, query, parameters, OutputMode(OutputKind.VERTICAL))


@cli.command('json-array')
@query_arguments
def json_array(connection_string: str, query: Optional[str], parameters: Tuple[str, ...]):
    """Print every row as a JSON array."""
    run_query(connection_string, query, parameters, OutputMode(OutputKind.JSON_ARRAY))


@cli.command('avro-record')
@click.option('--show-schema', is_flag=True, help='Print the Avro schema only')
@click.option('--deflate', is_flag=True, help='Use deflate compression')
@click.option('--reformat-json', is_flag=True, help='Parse and format JSON columns')
@click.option('--reformat-json-pretty', is_flag=True, help='Use pretty format when reformatting JSON')
@click.option('--timestamp-millis', is_flag=True,
              help='Represent timestamps as milliseconds since epoch instead of strings')
@click.option('--schema-name', default=config.DEFAULT_SCHEMA_NAME, show_default=True, help='Avro record schema name')
@click.option('--raw-records', is_flag=True,
              help='Write schemaless binary records instead of an object container file')
@click.option('--json-column', 'json_columns', multiple=True, help='Name of a column holding JSON (repeatable)')
@query_arguments
def avro_record(show_schema: bool, deflate: bool, reformat_json: bool, reformat_json_pretty: bool,
                timestamp_millis: bool, schema_name: str, raw_records: bool, json_columns: Tuple[str, ...],
                connection_string: str, query: Optional[str], parameters: Tuple[str, ...]):
    """
    Serialize the result as Avro, one record per row.

    By default rows are written as an Avro object container file.
    """
    if raw_records and deflate:
        raise click.UsageError("--deflate applies to object container files and cannot be used with --raw-records")

    output_mode = OutputMode.avro_record(
        show_schema_only=show_schema,
        deflate=deflate,
        reformat_json=reformat_json,
        reformat_json_pretty=reformat_json_pretty,
        timestamp_millis=timestamp_millis,
        schema_name=schema_name,
        raw_records=raw_records
    )
    run_query(connection_string, query, parameters, output_mode, json_columns)


@cli.command()
@click.argument('connection_string')
@click.argument('script', required=False)
def script(connection_string: str, script: Optional[str]):
    """
    Run the ';' separated statements of a script in order.

    Rows are printed as tabular text prefixed with the statement and row
    index. The first failing statement stops the script.
    """
    try:
        text = resolve_text(script)
        renderer = ScriptRenderer(click.get_text_stream("stdout"))
        with QueryExecutor.connect(connection_string) as executor:
            count = renderer.run_script(executor, text)
        logger.info(f"Executed {count} statements")
    except QueryToolError as e:
        fail(e)


# Export the CLI function as main for easy importing
main = cli

if __name__ == '__main__':
    cli()
