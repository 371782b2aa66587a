"""
数据库驱动工厂
负责创建和管理数据库驱动实例
"""
from typing import Dict, Optional, Type, Union

from .base import DatabaseDriver
from .mariadb import MariaDBDriver
from .mssql import MSSQLDriver
from .mysql import MySQLDriver
from .postgresql import PostgreSQLDriver
from .sqlite import SQLiteDriver
from ..dto import DatabaseType
from ..errors import DatabaseConnectionError


class DatabaseDriverFactory:
    """数据库驱动工厂类"""

    # 注册的驱动映射
    _drivers: Dict[str, Type[DatabaseDriver]] = {
        "mysql": MySQLDriver,
        "mariadb": MariaDBDriver,
        "postgres": PostgreSQLDriver,
        "mssql": MSSQLDriver,
        "sqlite": SQLiteDriver,
    }

    # 驱动无状态，每种类型共享一个实例
    _instances: Dict[str, DatabaseDriver] = {}

    @classmethod
    def get_driver(cls, db_type: Union[str, DatabaseType]) -> DatabaseDriver:
        """
        根据数据库类型获取对应的驱动实例

        Args:
            db_type: 数据库类型，如 'mysql', 'postgres', 'sqlite'

        Returns:
            数据库驱动实例

        Raises:
            DatabaseConnectionError: 如果数据库类型不支持
        """
        db_type_lower = _normalize(db_type)
        driver_class = cls._drivers.get(db_type_lower)

        if not driver_class:
            raise DatabaseConnectionError(
                f"不支持的数据库类型: {db_type}。"
                f"支持的类型: {', '.join(cls._drivers.keys())}"
            )

        driver = cls._instances.get(db_type_lower)
        if driver is None or type(driver) is not driver_class:
            driver = driver_class()
            cls._instances[db_type_lower] = driver
        return driver

    @classmethod
    def register_driver(cls, db_type: str, driver_class: Type[DatabaseDriver]):
        """
        注册新的数据库驱动

        Args:
            db_type: 数据库类型名称
            driver_class: 驱动类
        """
        key = _normalize(db_type)
        cls._drivers[key] = driver_class
        cls._instances.pop(key, None)

    @classmethod
    def get_supported_types(cls) -> list:
        """
        获取所有支持的数据库类型

        Returns:
            支持的数据库类型列表
        """
        return list(cls._drivers.keys())

    @classmethod
    def is_supported(cls, db_type: Union[str, DatabaseType]) -> bool:
        """
        检查是否支持指定的数据库类型

        Args:
            db_type: 数据库类型

        Returns:
            是否支持
        """
        return _normalize(db_type) in cls._drivers


def _normalize(db_type: Union[str, DatabaseType]) -> str:
    return str(getattr(db_type, "value", db_type) or "").lower()


def get_default_port(db_type: Union[str, DatabaseType]) -> Optional[int]:
    """
    获取数据库默认端口

    Returns:
        默认端口，SQLite 返回 None
    """
    return DatabaseDriverFactory.get_driver(db_type).default_port
