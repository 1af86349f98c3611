"""
Configuration settings for the ODBC tools.

This module contains default settings and configuration variables used
throughout the application.
"""
import os

# Avro output defaults
DEFAULT_SCHEMA_NAME = "result_set"
DEFAULT_JSON_INDENT = 2

# Text rendering
NULL_MARKER = "NULL"

# Positional query argument that forces reading from standard input
STDIN_MARKER = "-"

# Logging
DEFAULT_LOG_LEVEL = os.environ.get("ODBC_TOOLS_LOG_LEVEL", "WARNING").upper()
DEFAULT_LOG_FILE = os.environ.get("ODBC_TOOLS_LOG_FILE") or None
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"
