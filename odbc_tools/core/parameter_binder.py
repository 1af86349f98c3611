"""
Positional parameter binding for SQL statements.

Parameters are opaque text. They are handed to the driver unchanged and
any conversion to the column type is left to the driver.
"""
import logging
from typing import Sequence, Tuple

from odbc_tools.core.errors import BindCountMismatchError
from odbc_tools.core.script_splitter import count_placeholders

logger = logging.getLogger(__name__)


class BoundStatement:
    """A statement text together with the values for its placeholders."""

    def __init__(self, text: str, parameters: Tuple[str, ...]):
        self.text = text
        self.parameters = parameters

    def __repr__(self) -> str:
        return f"BoundStatement(text={self.text!r}, parameters={self.parameters!r})"


def bind_parameters(text: str, parameters: Sequence[str]) -> BoundStatement:
    """
    Bind parameter i to placeholder i, left to right.

    Args:
        text: Statement text with '?' placeholders
        parameters: Text values in placeholder order

    Returns:
        BoundStatement ready for execution

    Raises:
        BindCountMismatchError: If the number of values differs from the
            number of placeholders
    """
    expected = count_placeholders(text)
    values = tuple(parameters)
    if expected != len(values):
        logger.error(f"Statement expects {expected} parameter(s), got {len(values)}")
        raise BindCountMismatchError(expected, len(values))

    logger.debug(f"Bound {len(values)} parameter(s)")
    return BoundStatement(text, values)
