"""
数据库驱动模块
提供统一的数据库访问接口，支持多种数据库类型
"""
from .base import DatabaseDriver
from .factory import DatabaseDriverFactory, get_default_port
from .mariadb import MariaDBDriver
from .mssql import MSSQLDriver
from .mysql import MySQLDriver
from .postgresql import PostgreSQLDriver
from .sqlite import SQLiteDriver

__all__ = [
    'DatabaseDriver',
    'DatabaseDriverFactory',
    'get_default_port',
    'MariaDBDriver',
    'MSSQLDriver',
    'MySQLDriver',
    'PostgreSQLDriver',
    'SQLiteDriver',
]
