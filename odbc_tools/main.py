"""
Entry point for the ODBC tools CLI application.

This file serves as a clean entry point to the CLI functionality.
"""
from odbc_tools.cli.commands import cli


def main():
    cli()


if __name__ == "__main__":
    main()
