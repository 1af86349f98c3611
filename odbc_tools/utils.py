"""
Utility functions for the ODBC tools
"""
import logging
import sys
from typing import Optional, TextIO

from odbc_tools import config


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up logging configuration.

    Standard output carries query results, so console logging goes to
    standard error.

    Args:
        verbose: Log at DEBUG level instead of the configured default
        log_file: Optional path of a file that receives all log records

    Returns:
        Logger instance
    """
    logger = logging.getLogger("odbc_tools")

    level = logging.DEBUG if verbose else getattr(logging, config.DEFAULT_LOG_LEVEL, logging.WARNING)
    logger.setLevel(level)

    # Drop handlers from an earlier call in the same process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(config.CONSOLE_LOG_FORMAT))
    logger.addHandler(console_handler)

    log_file = log_file or config.DEFAULT_LOG_FILE
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def read_stdin(stream: Optional[TextIO] = None) -> str:
    """Read standard input to completion."""
    stream = stream or sys.stdin
    text = stream.read()
    logging.getLogger(__name__).debug(f"Read {len(text)} characters from standard input")
    return text


def resolve_text(text: Optional[str], stream: Optional[TextIO] = None) -> str:
    """
    Return inline statement text, or read it from standard input.

    Args:
        text: Inline text; None or '-' means standard input
        stream: Stream to read instead of sys.stdin

    Returns:
        The statement or script text
    """
    if text is None or text == config.STDIN_MARKER:
        return read_stdin(stream)
    return text
