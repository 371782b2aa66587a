"""
MariaDB数据库驱动
与MySQL协议兼容，仅驱动名称不同
"""
from .mysql import MySQLDriver


class MariaDBDriver(MySQLDriver):
    """MariaDB数据库驱动"""

    drivername = "mariadb+aiomysql"

    def get_db_type(self) -> str:
        """返回数据库类型"""
        return "mariadb"
