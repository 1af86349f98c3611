"""
Pytest configuration and fixtures for the ODBC tools tests.
"""
import os

import pytest


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "odbc: tests that require an actual ODBC data source"
    )


def has_odbc_connection():
    """Check if an ODBC data source is configured and reachable."""
    connection_string = os.environ.get("ODBC_TEST_CONNECTION_STRING")
    if not connection_string:
        return False

    try:
        import pyodbc
        pyodbc.connect(connection_string).close()
        return True
    except Exception:
        return False


def pytest_collection_modifyitems(config, items):
    """Skip ODBC tests when no data source is available."""
    odbc_items = [item for item in items if "odbc" in item.keywords]
    if not odbc_items or has_odbc_connection():
        return

    skip_odbc = pytest.mark.skip(reason="ODBC data source not available")
    for item in odbc_items:
        item.add_marker(skip_odbc)
