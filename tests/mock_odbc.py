"""
Mock DB-API objects shaped like pyodbc connections and cursors.
"""
from unittest.mock import MagicMock


def column(name, type_code=str, size=None, precision=None, scale=None, nullable=True):
    """Build a cursor.description entry."""
    return (name, type_code, None, size, precision, scale, nullable)


def make_cursor(description=None, rows=()):
    """Mock cursor with a description and rows served by fetchone."""
    cursor = MagicMock()
    cursor.description = description
    cursor.fetchone.side_effect = list(rows) + [None]
    return cursor


def make_connection(*cursors):
    """Mock connection handing out the given cursors in order."""
    connection = MagicMock()
    connection.cursor.side_effect = list(cursors)
    return connection
