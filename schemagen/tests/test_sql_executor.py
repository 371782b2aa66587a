"""
SQL执行测试
"""
import asyncio

import pytest

from schemagen.services.database_drivers import DatabaseDriverFactory
from schemagen.services.dto import AffectedRows, QueryResult
from schemagen.services.errors import SqlExecutionError, SqlSyntaxError, SqlTimeoutError


class TestExecuteSql:
    """测试执行SQL"""

    async def test_select(self, workbench, sqlite_connection):
        result = await workbench.execute_sql(
            sqlite_connection.id, "SELECT id, user_name, status FROM sys_user ORDER BY id"
        )
        assert isinstance(result, QueryResult)
        assert result.row_count == 3
        assert [field.name for field in result.fields] == ["id", "user_name", "status"]
        assert [field.type for field in result.fields] == ["number", "string", "number"]
        assert result.rows[0] == {"id": 1, "user_name": "admin", "status": 1}
        assert result.execution_time >= 0

    async def test_dml_is_committed(self, workbench, sqlite_connection):
        result = await workbench.execute_sql(
            sqlite_connection.id, "UPDATE sys_user SET status = 0 WHERE status = 1"
        )
        assert isinstance(result, AffectedRows)
        assert result.affected_rows == 2

        check = await workbench.execute_sql(
            sqlite_connection.id, "SELECT COUNT(*) AS total FROM sys_user WHERE status = 1"
        )
        assert check.rows == [{"total": 0}]

    async def test_insert_returning_is_committed(self, workbench, sqlite_connection):
        result = await workbench.execute_sql(
            sqlite_connection.id,
            "INSERT INTO sys_dept (dept_id, dept_name) VALUES (9, '研发部') RETURNING dept_id"
        )
        assert isinstance(result, QueryResult)
        assert result.rows == [{"dept_id": 9}]

        check = await workbench.execute_sql(
            sqlite_connection.id, "SELECT dept_id, dept_name FROM sys_dept WHERE dept_id = 9"
        )
        assert check.rows == [{"dept_id": 9, "dept_name": "研发部"}]

    async def test_duplicate_column_names(self, workbench, sqlite_connection):
        result = await workbench.execute_sql(sqlite_connection.id, "SELECT 1 AS a, 2 AS a, 3 AS a")
        assert [field.name for field in result.fields] == ["a", "a_1", "a_2"]
        assert result.rows == [{"a": 1, "a_1": 2, "a_2": 3}]
        for row in result.rows:
            assert list(row) == [field.name for field in result.fields]

    async def test_percent_sign_is_passed_through(self, workbench, sqlite_connection):
        result = await workbench.execute_sql(
            sqlite_connection.id, "SELECT user_name FROM sys_user WHERE user_name LIKE 'a%' ORDER BY user_name"
        )
        assert [row["user_name"] for row in result.rows] == ["admin", "alice"]

    async def test_syntax_error(self, workbench, sqlite_connection):
        with pytest.raises(SqlSyntaxError) as exc_info:
            await workbench.execute_sql(sqlite_connection.id, "SELEC * FROM sys_user")
        assert exc_info.value.kind == "syntax"
        assert "syntax error" in exc_info.value.original_message
        assert exc_info.value.sql == "SELEC * FROM sys_user"

    async def test_missing_table_error(self, workbench, sqlite_connection):
        with pytest.raises(SqlExecutionError) as exc_info:
            await workbench.execute_sql(sqlite_connection.id, "SELECT * FROM nope")
        assert "no such table" in exc_info.value.original_message

    async def test_blank_sql(self, workbench, sqlite_connection):
        with pytest.raises(ValueError):
            await workbench.execute_sql(sqlite_connection.id, "   ")

    async def test_timeout_returns_connection_to_pool(self, workbench, sqlite_connection, monkeypatch):
        driver = DatabaseDriverFactory.get_driver("sqlite")

        async def slow_query(conn, sql, limit=None):
            await asyncio.sleep(5)

        monkeypatch.setattr(driver, "run_query", slow_query)
        workbench.registry.query_timeout = 0.2

        with pytest.raises(SqlTimeoutError) as exc_info:
            await workbench.execute_sql(sqlite_connection.id, "SELECT 1")
        assert exc_info.value.kind == "timeout"
        assert workbench.registry.pool_status(sqlite_connection.id)["checked_out"] == 0

        monkeypatch.undo()
        result = await workbench.execute_sql(sqlite_connection.id, "SELECT 1 AS one")
        assert result.rows == [{"one": 1}]


class TestGetTableData:
    """测试分页浏览"""

    async def test_pages(self, workbench, sqlite_connection):
        first = await workbench.get_table_data(sqlite_connection.id, "sys_user", page=1, page_size=2)
        second = await workbench.get_table_data(sqlite_connection.id, "sys_user", page=2, page_size=2)
        assert first.row_count == 2
        assert second.row_count == 1
        assert {row["user_name"] for row in first.rows + second.rows} == {"admin", "alice", "bob"}

    async def test_page_beyond_end(self, workbench, sqlite_connection):
        result = await workbench.get_table_data(sqlite_connection.id, "sys_user", page=10, page_size=10)
        assert result.rows == []

    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (1, 1001)])
    async def test_invalid_paging(self, workbench, sqlite_connection, page, page_size):
        with pytest.raises(ValueError):
            await workbench.get_table_data(sqlite_connection.id, "sys_user", page=page, page_size=page_size)

    async def test_missing_table(self, workbench, sqlite_connection):
        with pytest.raises(SqlExecutionError):
            await workbench.get_table_data(sqlite_connection.id, "nope")
