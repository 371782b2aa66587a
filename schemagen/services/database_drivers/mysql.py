"""
MySQL数据库驱动
"""
import ssl
from typing import Any, Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause

from .base import DatabaseDriver
from ..dto import ConnectionParams
from ..errors import SqlConnectionLostError, SqlExecutionError, SqlPermissionError, SqlSyntaxError
from ..type_mapping import TypeFamily

# MySQL 错误码
SYNTAX_ERROR_CODES = {1064, 1149}
PERMISSION_ERROR_CODES = {1044, 1045, 1142, 1143, 1227, 1370}
CONNECTION_ERROR_CODES = {2002, 2003, 2006, 2013, 2055}


class MySQLDriver(DatabaseDriver):
    """MySQL数据库驱动"""

    drivername = "mysql+aiomysql"
    default_port = 3306
    type_overrides = {
        "year": TypeFamily.INTEGER,
        "enum": TypeFamily.OTHER,
        "set": TypeFamily.OTHER,
    }

    def get_db_type(self) -> str:
        """返回数据库类型"""
        return "mysql"

    def get_connect_args(self, params: ConnectionParams) -> Dict[str, Any]:
        """获取MySQL连接参数"""
        if not params.ssl:
            return {}
        # 启用SSL但不校验服务器证书
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return {"ssl": context}

    def format_identifier(self, name: str) -> str:
        """MySQL使用反引号格式化标识符"""
        return "`" + name.replace("`", "``") + "`"

    def build_page_query(self, table_name: str, limit: int, offset: int) -> TextClause:
        """LIMIT/OFFSET 分页"""
        return text(
            f"SELECT * FROM {self.format_identifier(table_name)} LIMIT :limit OFFSET :offset"
        ).bindparams(limit=limit, offset=offset)

    def classify_dbapi_error(self, orig: BaseException) -> Optional[Type[SqlExecutionError]]:
        """根据MySQL错误码归类"""
        code = orig.args[0] if getattr(orig, "args", None) else None
        if code in SYNTAX_ERROR_CODES:
            return SqlSyntaxError
        if code in PERMISSION_ERROR_CODES:
            return SqlPermissionError
        if code in CONNECTION_ERROR_CODES:
            return SqlConnectionLostError
        return None
