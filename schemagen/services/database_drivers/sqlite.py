"""
SQLite数据库驱动
"""
from typing import Any, Dict, Optional, Set, Type

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.sql.elements import TextClause

from .base import DatabaseDriver
from ..dto import ConnectionParams
from ..errors import SqlConnectionLostError, SqlExecutionError, SqlPermissionError, SqlSyntaxError
from ..type_mapping import TypeFamily, classify_native_type


class SQLiteDriver(DatabaseDriver):
    """SQLite数据库驱动"""

    drivername = "sqlite+aiosqlite"
    default_port = None
    supports_comments = False

    def get_db_type(self) -> str:
        """返回数据库类型"""
        return "sqlite"

    def get_connection_url(self, params: ConnectionParams) -> URL:
        """SQLite只需要文件路径"""
        return URL.create(self.drivername, database=params.filename)

    def get_connect_args(self, params: ConnectionParams) -> Dict[str, Any]:
        """获取SQLite连接参数"""
        return {"check_same_thread": False}

    def format_identifier(self, name: str) -> str:
        """SQLite使用双引号格式化标识符"""
        return '"' + name.replace('"', '""') + '"'

    def build_page_query(self, table_name: str, limit: int, offset: int) -> TextClause:
        """LIMIT/OFFSET 分页"""
        return text(
            f"SELECT * FROM {self.format_identifier(table_name)} LIMIT :limit OFFSET :offset"
        ).bindparams(limit=limit, offset=offset)

    def type_family(self, native_type: str) -> str:
        """无法直接识别的类型按SQLite类型亲和性规则归类"""
        family = classify_native_type(native_type, self.type_overrides)
        if family != TypeFamily.OTHER:
            return family

        lowered = (native_type or "").lower()
        if "int" in lowered:
            return TypeFamily.INTEGER
        if "char" in lowered or "clob" in lowered or "text" in lowered:
            return TypeFamily.STRING
        if not lowered or "blob" in lowered:
            return TypeFamily.BINARY
        if "real" in lowered or "floa" in lowered or "doub" in lowered:
            return TypeFamily.DECIMAL
        return TypeFamily.OTHER

    def is_auto_increment(self, column: Dict[str, Any], primary_keys: Set[str]) -> bool:
        """INTEGER PRIMARY KEY 是 rowid 的别名，自动递增"""
        if column.get("autoincrement") is True:
            return True
        return (
            primary_keys == {column["name"]}
            and str(column["type"]).upper() == "INTEGER"
        )

    def classify_dbapi_error(self, orig: BaseException) -> Optional[Type[SqlExecutionError]]:
        """SQLite没有错误码，按错误文本归类"""
        message = str(orig).lower()
        if "syntax error" in message or "incomplete input" in message:
            return SqlSyntaxError
        if "readonly database" in message or "not authorized" in message:
            return SqlPermissionError
        if "unable to open database" in message or "disk i/o error" in message:
            return SqlConnectionLostError
        return None
