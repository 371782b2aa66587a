"""
PostgreSQL数据库驱动
"""
from typing import Any, Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause

from .base import DatabaseDriver
from ..dto import ConnectionParams
from ..errors import SqlConnectionLostError, SqlExecutionError, SqlPermissionError, SqlSyntaxError
from ..type_mapping import TypeFamily


class PostgreSQLDriver(DatabaseDriver):
    """PostgreSQL数据库驱动"""

    drivername = "postgresql+asyncpg"
    default_port = 5432
    type_overrides = {
        "uuid": TypeFamily.OTHER,
        "inet": TypeFamily.STRING,
        "cidr": TypeFamily.STRING,
        "interval": TypeFamily.OTHER,
        # PostgreSQL 的 bit(n) 是位串
        "bit": TypeFamily.OTHER,
        "varbit": TypeFamily.OTHER,
    }

    def get_db_type(self) -> str:
        """返回数据库类型"""
        return "postgres"

    def get_connect_args(self, params: ConnectionParams) -> Dict[str, Any]:
        """获取PostgreSQL连接参数"""
        return {"ssl": "require"} if params.ssl else {}

    def format_identifier(self, name: str) -> str:
        """PostgreSQL使用双引号格式化标识符"""
        return '"' + name.replace('"', '""') + '"'

    def build_page_query(self, table_name: str, limit: int, offset: int) -> TextClause:
        """LIMIT/OFFSET 分页"""
        return text(
            f"SELECT * FROM {self.format_identifier(table_name)} LIMIT :limit OFFSET :offset"
        ).bindparams(limit=limit, offset=offset)

    def classify_dbapi_error(self, orig: BaseException) -> Optional[Type[SqlExecutionError]]:
        """根据SQLSTATE归类"""
        sqlstate = (
            getattr(orig, "sqlstate", None)
            or getattr(orig, "pgcode", None)
            or getattr(getattr(orig, "__cause__", None), "sqlstate", None)
        )
        if not sqlstate:
            return None
        if sqlstate == "42601":
            return SqlSyntaxError
        if sqlstate == "42501" or sqlstate.startswith("28"):
            return SqlPermissionError
        if sqlstate.startswith("08") or sqlstate in ("57P01", "57P02", "57P03"):
            return SqlConnectionLostError
        return None
