"""
数据库驱动测试
"""
import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from schemagen.services.database_drivers import (
    DatabaseDriverFactory,
    MariaDBDriver,
    MSSQLDriver,
    MySQLDriver,
    PostgreSQLDriver,
    SQLiteDriver,
    get_default_port,
)
from schemagen.services.database_drivers.base import describe_value_type, unique_field_names
from schemagen.services.dto import ConnectionParams, DatabaseType
from schemagen.services.errors import (
    DatabaseConnectionError,
    SqlConnectionLostError,
    SqlExecutionError,
    SqlPermissionError,
    SqlSyntaxError,
)


class TestDatabaseDriverFactory:
    """测试数据库驱动工厂"""

    @pytest.mark.parametrize("db_type, driver_class, drivername", [
        ("mysql", MySQLDriver, "mysql+aiomysql"),
        ("mariadb", MariaDBDriver, "mariadb+aiomysql"),
        ("postgres", PostgreSQLDriver, "postgresql+asyncpg"),
        ("mssql", MSSQLDriver, "mssql+aioodbc"),
        ("sqlite", SQLiteDriver, "sqlite+aiosqlite"),
    ])
    def test_get_driver(self, db_type, driver_class, drivername):
        driver = DatabaseDriverFactory.get_driver(db_type)
        assert isinstance(driver, driver_class)
        assert driver.get_db_type() == db_type
        assert driver.drivername == drivername

    def test_get_driver_accepts_enum_and_case(self):
        assert isinstance(DatabaseDriverFactory.get_driver(DatabaseType.POSTGRES), PostgreSQLDriver)
        assert isinstance(DatabaseDriverFactory.get_driver("MySQL"), MySQLDriver)

    def test_driver_instance_is_shared(self):
        assert DatabaseDriverFactory.get_driver("mysql") is DatabaseDriverFactory.get_driver("mysql")

    def test_unsupported_type(self):
        with pytest.raises(DatabaseConnectionError) as exc_info:
            DatabaseDriverFactory.get_driver("oracle")
        assert "不支持的数据库类型" in str(exc_info.value)

    def test_supported_types(self):
        types = DatabaseDriverFactory.get_supported_types()
        assert set(types) == {"mysql", "mariadb", "postgres", "mssql", "sqlite"}
        assert DatabaseDriverFactory.is_supported("sqlite")
        assert not DatabaseDriverFactory.is_supported("oracle")

    def test_default_ports(self):
        assert get_default_port("mysql") == 3306
        assert get_default_port("mariadb") == 3306
        assert get_default_port("postgres") == 5432
        assert get_default_port("mssql") == 1433
        assert get_default_port("sqlite") is None


class TestConnectionUrl:
    """测试连接URL构建"""

    def test_mysql_url(self):
        params = ConnectionParams(
            type="mysql", host="db.local", username="root", password="p@ss", database="app"
        )
        url = MySQLDriver().get_connection_url(params)
        assert url.drivername == "mysql+aiomysql"
        assert url.host == "db.local"
        assert url.port == 3306
        assert url.password == "p@ss"
        assert url.database == "app"

    def test_mysql_ssl_connect_args(self):
        driver = MySQLDriver()
        assert driver.get_connect_args(ConnectionParams(type="mysql", host="h", database="d")) == {}
        args = driver.get_connect_args(ConnectionParams(type="mysql", host="h", database="d", ssl=True))
        assert "ssl" in args

    def test_postgres_ssl(self):
        driver = PostgreSQLDriver()
        params = ConnectionParams(type="postgres", host="h", port=6543, database="d", ssl=True)
        assert driver.get_connect_args(params) == {"ssl": "require"}
        assert driver.get_connection_url(params).port == 6543

    def test_mssql_url_query(self, monkeypatch):
        monkeypatch.setenv("MSSQL_ODBC_DRIVER", "ODBC Driver 17 for SQL Server")
        params = ConnectionParams(type="mssql", host="h", database="d", ssl=True)
        url = MSSQLDriver().get_connection_url(params)
        assert url.query["driver"] == "ODBC Driver 17 for SQL Server"
        assert url.query["Encrypt"] == "yes"
        assert url.query["TrustServerCertificate"] == "yes"

    def test_sqlite_url(self, tmp_path):
        params = ConnectionParams(type="sqlite", filename=str(tmp_path / "a.db"))
        url = SQLiteDriver().get_connection_url(params)
        assert url.drivername == "sqlite+aiosqlite"
        assert url.database == str(tmp_path / "a.db")
        assert url.host is None


class TestPageQuery:
    """测试分页语句"""

    @pytest.mark.parametrize("driver, expected", [
        (MySQLDriver(), "SELECT * FROM `sys_user` LIMIT :limit OFFSET :offset"),
        (PostgreSQLDriver(), 'SELECT * FROM "sys_user" LIMIT :limit OFFSET :offset'),
        (SQLiteDriver(), 'SELECT * FROM "sys_user" LIMIT :limit OFFSET :offset'),
        (
            MSSQLDriver(),
            "SELECT * FROM [sys_user] ORDER BY (SELECT NULL) OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY",
        ),
    ])
    def test_page_query_text(self, driver, expected):
        statement = driver.build_page_query("sys_user", limit=10, offset=20)
        assert statement.text == expected
        assert statement.compile().params == {"limit": 10, "offset": 20}

    def test_identifier_escaping(self):
        assert MySQLDriver().format_identifier("a`b") == "`a``b`"
        assert PostgreSQLDriver().format_identifier('a"b') == '"a""b"'
        assert MSSQLDriver().format_identifier("a]b") == "[a]]b]"


class TestErrorClassification:
    """测试错误分类"""

    def test_mysql_error_codes(self):
        driver = MySQLDriver()
        syntax = ProgrammingError("SELEC 1", {}, Exception(1064, "You have an error in your SQL syntax"))
        denied = OperationalError("SELECT 1", {}, Exception(1142, "SELECT command denied to user"))
        lost = OperationalError("SELECT 1", {}, Exception(2013, "Lost connection to MySQL server"))
        other = OperationalError("SELECT 1", {}, Exception(1146, "Table 'app.nope' doesn't exist"))
        assert driver.classify_error(syntax) is SqlSyntaxError
        assert driver.classify_error(denied) is SqlPermissionError
        assert driver.classify_error(lost) is SqlConnectionLostError
        assert driver.classify_error(other) is SqlExecutionError

    def test_postgres_sqlstate(self):
        class PgError(Exception):
            def __init__(self, sqlstate, message):
                super().__init__(message)
                self.sqlstate = sqlstate

        driver = PostgreSQLDriver()
        assert driver.classify_error(
            ProgrammingError("x", {}, PgError("42601", "syntax error at or near \"SELEC\""))
        ) is SqlSyntaxError
        assert driver.classify_error(
            ProgrammingError("x", {}, PgError("42501", "permission denied for table t"))
        ) is SqlPermissionError
        assert driver.classify_error(
            OperationalError("x", {}, PgError("08006", "connection failure"))
        ) is SqlConnectionLostError

    def test_sqlite_messages(self):
        driver = SQLiteDriver()
        assert driver.classify_error(
            OperationalError("x", {}, Exception('near "SELEC": syntax error'))
        ) is SqlSyntaxError
        assert driver.classify_error(
            OperationalError("x", {}, Exception("attempt to write a readonly database"))
        ) is SqlPermissionError
        assert driver.classify_error(
            OperationalError("x", {}, Exception("no such table: nope"))
        ) is SqlExecutionError

    def test_invalidated_connection(self):
        error = OperationalError("x", {}, Exception("boom"), connection_invalidated=True)
        assert MySQLDriver().classify_error(error) is SqlConnectionLostError

    def test_error_message_prefers_original(self):
        error = OperationalError("x", {}, Exception("no such table: nope"))
        assert SQLiteDriver.error_message(error) == "no such table: nope"


class TestSqliteTypeFamily:
    """测试SQLite类型亲和性"""

    @pytest.mark.parametrize("native_type, family", [
        ("INTEGER", "integer"),
        ("BIGINTEGER", "integer"),
        ("VARCHAR(20)", "string"),
        ("NATIVE CHARACTER(70)", "string"),
        ("BLOB", "binary"),
        ("", "binary"),
        ("DOUBLE PRECISION", "decimal"),
        ("FLOATING", "decimal"),
    ])
    def test_affinity(self, native_type, family):
        assert SQLiteDriver().type_family(native_type) == family


class TestDescribeValueType:
    """测试结果集字段类型推断"""

    def test_value_types(self):
        import datetime
        import decimal

        assert describe_value_type(None) == "unknown"
        assert describe_value_type(True) == "boolean"
        assert describe_value_type(3) == "number"
        assert describe_value_type(decimal.Decimal("1.5")) == "number"
        assert describe_value_type(datetime.datetime(2024, 1, 1)) == "Date"
        assert describe_value_type(b"\x00") == "binary"
        assert describe_value_type("x") == "string"

    def test_unique_field_names(self):
        assert unique_field_names(["id", "name"]) == ["id", "name"]
        assert unique_field_names(["a", "a", "a"]) == ["a", "a_1", "a_2"]
        assert unique_field_names(["a", "a_1", "a"]) == ["a", "a_1", "a_2"]


class TestSqliteConnectionTest:
    """测试连接测试（不抛异常）"""

    async def test_success(self, target_path):
        params = ConnectionParams(type="sqlite", filename=str(target_path))
        result = await SQLiteDriver().test_connection(params, timeout=5)
        assert result.ok is True

    async def test_failure_is_reported(self, tmp_path):
        params = ConnectionParams(type="sqlite", filename=str(tmp_path / "missing" / "nope.db"))
        result = await SQLiteDriver().test_connection(params, timeout=5)
        assert result.ok is False
        assert result.message


class TestRegisterDriver:
    """测试注册自定义驱动"""

    def test_register_driver(self, monkeypatch):
        monkeypatch.setattr(DatabaseDriverFactory, "_drivers", dict(DatabaseDriverFactory._drivers))
        monkeypatch.setattr(DatabaseDriverFactory, "_instances", {})

        class TiDBDriver(MySQLDriver):
            default_port = 4000

            def get_db_type(self) -> str:
                return "tidb"

        DatabaseDriverFactory.register_driver("TiDB", TiDBDriver)
        assert DatabaseDriverFactory.is_supported("tidb")
        assert get_default_port("tidb") == 4000
        assert DatabaseDriverFactory.get_driver("tidb").format_identifier("t") == "`t`"
