"""
Script splitting module for running several SQL statements in one go.

This module splits raw script text into individual statements. Semicolons
inside quoted literals and comments are not statement terminators, and
comments are removed from the statement text.
"""
import logging
import re
from typing import Iterator, Tuple

from odbc_tools.core.errors import UnterminatedQuoteError

logger = logging.getLogger(__name__)

QUOTE_NAMES = {"'": "single", '"': "double"}

# Runs of characters that can never start a token of interest
_PLAIN = re.compile(r"[^'\";?/\-]+")


def _find_closing_quote(text: str, start: int) -> int:
    """Return the index of the quote closing the literal opened at start."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i
        i += 1
    raise UnterminatedQuoteError(QUOTE_NAMES[quote], start)


def scan(text: str) -> Iterator[Tuple[str, str]]:
    """
    Tokenize SQL text into (kind, value) pairs.

    Kinds are 'text' (plain SQL), 'literal' (a complete quoted literal),
    'placeholder' (a '?' outside literals) and 'terminator' (a ';' outside
    literals). Comments produce no token, except that a block comment leaves
    a single space so the words around it stay apart.

    Raises:
        UnterminatedQuoteError: If the text ends inside a quoted literal
    """
    i = 0
    length = len(text)
    while i < length:
        plain = _PLAIN.match(text, i)
        if plain:
            yield "text", plain.group()
            i = plain.end()
            continue

        char = text[i]
        if char in QUOTE_NAMES:
            end = _find_closing_quote(text, i)
            yield "literal", text[i:end + 1]
            i = end + 1
        elif text.startswith("--", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
            yield "text", " "
        elif char == ";":
            yield "terminator", char
            i += 1
        elif char == "?":
            yield "placeholder", char
            i += 1
        else:
            yield "text", char
            i += 1


def split_queries(text: str) -> Iterator[str]:
    """
    Split a script into statements.

    This is a generator: statements are produced as the scan reaches their
    terminator, so an unterminated quote near the end of a script is only
    reported after the statements before it were produced.

    Args:
        text: Raw script text

    Yields:
        Trimmed, non-empty statement texts with comments removed

    Raises:
        UnterminatedQuoteError: If the script ends inside a quoted literal
    """
    parts = []
    count = 0
    for kind, value in scan(text):
        if kind == "terminator":
            statement = "".join(parts).strip()
            parts = []
            if statement:
                count += 1
                logger.debug(f"Split statement {count}: {statement}")
                yield statement
        else:
            parts.append(value)

    statement = "".join(parts).strip()
    if statement:
        count += 1
        logger.debug(f"Split statement {count}: {statement}")
        yield statement


def count_placeholders(text: str) -> int:
    """Count the '?' placeholders outside quoted literals and comments."""
    return sum(1 for kind, _ in scan(text) if kind == "placeholder")
