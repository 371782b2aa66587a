"""
SQL Server数据库驱动
通过 aioodbc 连接，需要安装 mssql 可选依赖及 ODBC 驱动
"""
import os
from typing import Optional, Type

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.sql.elements import TextClause

from .base import DatabaseDriver
from ..dto import ConnectionParams
from ..errors import SqlConnectionLostError, SqlExecutionError, SqlPermissionError, SqlSyntaxError
from ..type_mapping import TypeFamily

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


class MSSQLDriver(DatabaseDriver):
    """SQL Server数据库驱动"""

    drivername = "mssql+aioodbc"
    default_port = 1433
    type_overrides = {
        "uniqueidentifier": TypeFamily.OTHER,
        "xml": TypeFamily.STRING,
        "sql_variant": TypeFamily.OTHER,
        "rowversion": TypeFamily.BINARY,
    }

    def get_db_type(self) -> str:
        """返回数据库类型"""
        return "mssql"

    def get_connection_url(self, params: ConnectionParams) -> URL:
        """ODBC 驱动及加密选项通过 URL 查询参数传递"""
        query = {"driver": os.getenv("MSSQL_ODBC_DRIVER", DEFAULT_ODBC_DRIVER)}
        if params.ssl:
            query["Encrypt"] = "yes"
            query["TrustServerCertificate"] = "yes"
        else:
            query["Encrypt"] = "no"
        return URL.create(
            self.drivername,
            username=params.username or None,
            password=params.password or None,
            host=params.host,
            port=params.port or self.default_port,
            database=params.database or None,
            query=query,
        )

    def format_identifier(self, name: str) -> str:
        """SQL Server使用方括号格式化标识符"""
        return "[" + name.replace("]", "]]") + "]"

    def build_page_query(self, table_name: str, limit: int, offset: int) -> TextClause:
        """OFFSET/FETCH 分页，必须带 ORDER BY"""
        return text(
            f"SELECT * FROM {self.format_identifier(table_name)} "
            f"ORDER BY (SELECT NULL) OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY"
        ).bindparams(limit=limit, offset=offset)

    def classify_dbapi_error(self, orig: BaseException) -> Optional[Type[SqlExecutionError]]:
        """根据ODBC SQLSTATE及错误文本归类"""
        sqlstate = str(orig.args[0]) if getattr(orig, "args", None) else ""
        message = str(orig).lower()
        if sqlstate.startswith("08"):
            return SqlConnectionLostError
        if "permission was denied" in message or sqlstate == "28000":
            return SqlPermissionError
        if sqlstate in ("42000", "37000") and "syntax" in message:
            return SqlSyntaxError
        return None
