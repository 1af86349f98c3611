"""
ODBC Tools - run SQL against ODBC data sources and render the results

This package provides query splitting, parameter binding and result
rendering (debug text, vertical, JSON arrays and Avro) on top of pyodbc.
"""

__version__ = "0.1.0"
