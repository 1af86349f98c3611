"""
Command line interface for the ODBC tools
"""
