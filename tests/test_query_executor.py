"""
Unit tests for the query executor.
"""
import datetime
import decimal
import sys
import unittest
from unittest.mock import MagicMock, patch

from mock_odbc import column, make_connection, make_cursor
from odbc_tools.core.errors import (
    BindCountMismatchError,
    DatabaseConnectionError,
    DescribeError,
    ExecutionError,
    FetchError,
    InitializationError,
    PrepareError,
)
from odbc_tools.core.query_executor import ColumnSchema, DatumType, QueryExecutor, describe_column


class TestDescribeColumn(unittest.TestCase):
    """Test cases for mapping cursor descriptions to column schemas."""

    def test_integer_widths(self):
        self.assertEqual(describe_column(column("a", int, 10, 10, 0)).datum_type, DatumType.INTEGER)
        self.assertEqual(describe_column(column("a", int, 19, 19, 0)).datum_type, DatumType.BIGINT)

    def test_float_widths(self):
        self.assertEqual(describe_column(column("a", float, 8, 53)).datum_type, DatumType.DOUBLE)
        self.assertEqual(describe_column(column("a", float, 4, 24)).datum_type, DatumType.FLOAT)

    def test_decimal_native_type(self):
        schema = describe_column(column("price", decimal.Decimal, 12, 10, 2, nullable=False))
        self.assertEqual(schema, ColumnSchema("price", DatumType.DECIMAL, "Decimal(precision=10, scale=2)", False))

    def test_string_and_json(self):
        self.assertEqual(describe_column(column("name", str, 20)).native_type, "str(size=20)")
        self.assertEqual(describe_column(column("doc", str, 0), json_columns=["doc"]).datum_type, DatumType.JSON)
        self.assertEqual(describe_column(column("doc", str, 0)).datum_type, DatumType.STRING)

    def test_temporal_types(self):
        self.assertEqual(describe_column(column("t", datetime.datetime)).datum_type, DatumType.TIMESTAMP)
        self.assertEqual(describe_column(column("t", datetime.date)).datum_type, DatumType.DATE)
        self.assertEqual(describe_column(column("t", datetime.time)).datum_type, DatumType.TIME)

    def test_unknown_nullability_is_nullable(self):
        self.assertTrue(describe_column(column("a", bytes, 16, nullable=None)).nullable)


class TestQueryExecutor(unittest.TestCase):
    """Test cases for the QueryExecutor class."""

    def setUp(self):
        """Set up a connection returning one two-column result."""
        self.cursor = make_cursor(
            [column("id", int, 10, 10, 0, nullable=False), column("name", str, 20)],
            [(1, "a"), (2, None)]
        )
        self.connection = make_connection(self.cursor)
        self.executor = QueryExecutor(self.connection)

    def test_execute_binds_parameters(self):
        result = self.executor.execute("select id, name from t where id > ? and name <> ?", ["0", "x"])
        self.cursor.execute.assert_called_once_with("select id, name from t where id > ? and name <> ?", "0", "x")
        self.assertEqual(result.column_names, ["id", "name"])

    def test_rows_are_fetched_lazily(self):
        result = self.executor.execute("select id, name from t")
        self.assertEqual(self.cursor.fetchone.call_count, 0)

        rows = iter(result)
        self.assertEqual(next(rows), (1, "a"))
        self.assertEqual(self.cursor.fetchone.call_count, 1)
        self.assertEqual(list(rows), [(2, None)])
        self.assertEqual(result.row_count, 2)
        self.cursor.close.assert_called()

    def test_rows_iterate_once(self):
        result = self.executor.execute("select id, name from t")
        list(result)
        with self.assertRaises(FetchError):
            iter(result)

    def test_schema_never_fetches(self):
        columns = self.executor.schema("select id, name from t")
        self.assertEqual([c.name for c in columns], ["id", "name"])
        self.assertEqual(columns[0].datum_type, DatumType.INTEGER)
        self.assertFalse(columns[0].nullable)
        self.assertEqual(self.cursor.fetchone.call_count, 0)
        self.cursor.close.assert_called_once()

    def test_bind_mismatch_before_execution(self):
        with self.assertRaises(BindCountMismatchError):
            self.executor.execute("select ? from t", [])
        self.connection.cursor.assert_not_called()

    def test_execute_error(self):
        self.cursor.execute.side_effect = Exception("boom")
        with self.assertRaises(ExecutionError) as context:
            self.executor.execute("select 1")
        self.assertEqual(str(context.exception), "Failed to execute query: boom")

    def test_schema_prepare_error(self):
        self.cursor.execute.side_effect = Exception("syntax error")
        with self.assertRaises(PrepareError):
            self.executor.schema("selec 1")

    def test_describe_error(self):
        self.cursor.description = [("only-a-name",)]
        with self.assertRaises(DescribeError):
            self.executor.execute("select 1")

    def test_fetch_error(self):
        self.cursor.fetchone.side_effect = [(1, "a"), Exception("connection lost")]
        rows = iter(self.executor.execute("select id, name from t"))
        next(rows)
        with self.assertRaises(FetchError):
            next(rows)

    def test_row_length_must_match_schema(self):
        self.cursor.fetchone.side_effect = [(1,), None]
        with self.assertRaises(FetchError):
            list(self.executor.execute("select id, name from t"))

    def test_cursor_close_error_is_logged(self):
        self.cursor.close.side_effect = Exception("connection gone")
        result = self.executor.execute("select id, name from t")
        with self.assertLogs("odbc_tools.core.query_executor", level="WARNING") as logs:
            result.close()
        self.assertIn("connection gone", logs.output[0])

    def test_statement_without_result_set(self):
        cursor = make_cursor(None)
        executor = QueryExecutor(make_connection(cursor))
        result = executor.execute("create table t (id int)")
        self.assertEqual(result.schema, [])
        self.assertEqual(list(result), [])
        cursor.fetchone.assert_not_called()

    def test_rows_unavailable_after_close(self):
        with self.executor as executor:
            result = executor.execute("select id, name from t")
        self.connection.close.assert_called_once()
        with self.assertRaises(FetchError):
            list(result)

    def test_execute_script(self):
        first = make_cursor([column("a", int, 10, 10)], [(1,)])
        second = make_cursor([column("b", str, 1)], [("x",)])
        executor = QueryExecutor(make_connection(first, second))

        results = [(r.column_names, list(r)) for r in executor.execute_script("select 1 as a; select 'x' as b")]
        self.assertEqual(results, [(["a"], [(1,)]), (["b"], [("x",)])])
        first.execute.assert_called_once_with("select 1 as a")
        second.execute.assert_called_once_with("select 'x' as b")

    def test_execute_script_aborts_on_first_error(self):
        first = make_cursor([column("a", int, 10, 10)], [(1,)])
        first.execute.side_effect = Exception("no such table")
        second = make_cursor([column("b", str, 1)], [("x",)])
        connection = make_connection(first, second)
        executor = QueryExecutor(connection)

        with self.assertRaises(ExecutionError):
            for result in executor.execute_script("select a from missing; select 'x' as b"):
                list(result)
        self.assertEqual(connection.cursor.call_count, 1)
        second.execute.assert_not_called()


class TestDriverManager(unittest.TestCase):
    """Test cases for connecting through pyodbc."""

    def setUp(self):
        self.pyodbc = MagicMock()
        patcher = patch.object(QueryExecutor, "_load_driver_manager", return_value=self.pyodbc)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_connect(self):
        executor = QueryExecutor.connect("DSN=test", json_columns=["doc"])
        self.pyodbc.connect.assert_called_once_with("DSN=test", autocommit=True)
        self.assertIs(executor.connection, self.pyodbc.connect.return_value)
        self.assertEqual(executor.json_columns, frozenset(["doc"]))

    def test_connect_error(self):
        self.pyodbc.connect.side_effect = Exception("Data source name not found")
        with self.assertRaises(DatabaseConnectionError) as context:
            QueryExecutor.connect("DSN=missing")
        self.assertIn("Failed to connect to database", str(context.exception))

    def test_list_drivers(self):
        self.pyodbc.drivers.return_value = ["SQLite3", "PostgreSQL Unicode"]
        self.assertEqual(QueryExecutor.list_drivers(), ["SQLite3", "PostgreSQL Unicode"])


class TestDriverManagerMissing(unittest.TestCase):
    """pyodbc that cannot be imported is an initialization failure."""

    def test_missing_pyodbc(self):
        with patch.dict(sys.modules, {"pyodbc": None}):
            with self.assertRaises(InitializationError):
                QueryExecutor.connect("DSN=test")


if __name__ == "__main__":
    unittest.main()
