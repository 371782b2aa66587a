"""
数据库连接注册表
管理数据库连接的增删改查，以及每个连接对应的连接池
"""
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ..models import DatabaseConnection
from ..utils.datetime_helper import to_iso_string
from ..utils.logger import get_logger, log_database_connection_error
from ..utils.pool_monitor import get_pool_status
from .database_drivers import DatabaseDriver, DatabaseDriverFactory, get_default_port
from .dto import (
    ConnectionPage,
    ConnectionParams,
    ConnectionStatus,
    ConnectionTestResult,
    DatabaseConnectionCreate,
    DatabaseConnectionUpdate,
    DatabaseConnectionView,
    DatabaseType,
)
from .encryption_service import EncryptionService, get_encryption_service
from .errors import (
    ConnectionValidationError,
    DatabaseConnectionError,
    SystemConnectionError,
)
from .metadata_store import MetadataStore

logger = get_logger(__name__)

# 修改后需要重建连接池的字段
CONNECTION_PARAM_FIELDS = ("type", "host", "port", "username", "password", "database", "filename", "ssl")

# 系统内置连接不允许修改的字段
SYSTEM_PROTECTED_FIELDS = ("type", "filename", "host")

# SQLite 连接不允许出现的字段
NETWORK_ONLY_FIELDS = ("host", "port", "username", "password")


def validate_connection_fields(values: Dict[str, Any]) -> None:
    """
    校验连接字段组合

    SQLite 只需要 filename，不能有 host/port/username/password；
    其他数据库需要 host 和 database，不能有 filename。

    Raises:
        ConnectionValidationError: 字段组合不合法
    """
    db_type = getattr(values.get("type"), "value", values.get("type"))
    if not db_type or not DatabaseDriverFactory.is_supported(db_type):
        raise ConnectionValidationError(f"不支持的数据库类型: {db_type}")

    if db_type == DatabaseType.SQLITE.value:
        if not values.get("filename"):
            raise ConnectionValidationError("SQLite 连接必须提供 filename")
        present = [field for field in NETWORK_ONLY_FIELDS if values.get(field) not in (None, "")]
        if present:
            raise ConnectionValidationError(f"SQLite 连接不能设置: {', '.join(present)}")
        return

    if not values.get("host"):
        raise ConnectionValidationError(f"{db_type} 连接必须提供 host")
    if not values.get("database"):
        raise ConnectionValidationError(f"{db_type} 连接必须提供 database")
    if values.get("filename"):
        raise ConnectionValidationError(f"{db_type} 连接不能设置 filename")


class ConnectionRegistry:
    """数据库连接注册表"""

    def __init__(
        self,
        store: Optional[MetadataStore] = None,
        encryption_service: Optional[EncryptionService] = None
    ):
        """
        初始化连接注册表

        Args:
            store: 元数据存储
            encryption_service: 密码加密服务
        """
        self.store = store or MetadataStore()
        self.encryption_service = encryption_service or get_encryption_service()
        # connection_id -> (驱动, 连接池)
        self._engines: Dict[int, Tuple[DatabaseDriver, AsyncEngine]] = {}

        self.pool_size = int(os.getenv("DB_POOL_SIZE", "5"))
        self.max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        self.pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.query_timeout = float(os.getenv("QUERY_TIMEOUT_SECONDS", "30"))

    # ============ 增删改查 ============

    def create(self, data: DatabaseConnectionCreate) -> DatabaseConnectionView:
        """
        创建数据库连接

        Raises:
            ConnectionValidationError: 字段组合不合法
        """
        values = data.model_dump(mode="json")
        validate_connection_fields(values)

        if values["type"] != DatabaseType.SQLITE.value and not values.get("port"):
            values["port"] = get_default_port(values["type"])

        password = values.pop("password", None)
        values["encrypted_password"] = self.encryption_service.encrypt_password(password)

        record = self.store.add_connection(values)
        logger.info(f"创建数据库连接: {record.name} ({record.type})")
        return self.to_view(record)

    def get(self, connection_id: int) -> DatabaseConnectionView:
        """获取数据库连接（不含密码）"""
        return self.to_view(self.store.get_connection(connection_id))

    def list(
        self,
        name: Optional[str] = None,
        db_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> ConnectionPage:
        """分页查询数据库连接"""
        db_type = getattr(db_type, "value", db_type)
        status = getattr(status, "value", status)
        total, records = self.store.list_connections(
            name=name, db_type=db_type, status=status, page=page, page_size=page_size
        )
        return ConnectionPage(
            items=[self.to_view(record) for record in records],
            total=total,
            page=page,
            page_size=page_size,
        )

    async def update(self, connection_id: int, data: DatabaseConnectionUpdate) -> DatabaseConnectionView:
        """
        更新数据库连接

        连接参数变化时释放旧的连接池，下次使用时按新参数重建。

        Raises:
            SystemConnectionError: 修改系统内置连接的受保护字段
            ConnectionValidationError: 修改后字段组合不合法
        """
        record = self.store.get_connection(connection_id)
        changes = data.model_dump(mode="json", exclude_unset=True)

        if record.is_system:
            protected = [
                field for field in SYSTEM_PROTECTED_FIELDS
                if field in changes and changes[field] != getattr(record, field)
            ]
            if protected:
                raise SystemConnectionError(
                    f"系统内置连接不允许修改: {', '.join(protected)}"
                )

        merged = {
            "type": record.type,
            "host": record.host,
            "port": record.port,
            "username": record.username,
            "password": "***" if record.encrypted_password else None,
            "database": record.database,
            "filename": record.filename,
        }
        merged.update(changes)
        validate_connection_fields(merged)

        if merged["type"] != DatabaseType.SQLITE.value and not merged.get("port"):
            changes["port"] = get_default_port(merged["type"])

        if "password" in changes:
            changes["encrypted_password"] = self.encryption_service.encrypt_password(changes.pop("password"))

        params_changed = any(
            field in changes and changes[field] != getattr(record, field)
            for field in CONNECTION_PARAM_FIELDS if field != "password"
        ) or "encrypted_password" in changes

        record = self.store.update_connection(connection_id, changes)

        if params_changed or record.status == ConnectionStatus.DISABLED.value:
            await self.dispose(connection_id)

        logger.info(f"更新数据库连接: id={connection_id}, fields={sorted(changes)}")
        return self.to_view(record)

    async def set_status(self, connection_id: int, status: ConnectionStatus) -> DatabaseConnectionView:
        """启用或禁用连接，系统内置连接同样允许"""
        status = ConnectionStatus(status)
        record = self.store.update_connection(connection_id, {"status": status.value})
        if status == ConnectionStatus.DISABLED:
            await self.dispose(connection_id)
        logger.info(f"修改连接状态: id={connection_id}, status={status.value}")
        return self.to_view(record)

    async def delete(self, connection_id: int) -> None:
        """
        删除数据库连接并释放连接池

        Raises:
            SystemConnectionError: 系统内置连接不允许删除
        """
        record = self.store.get_connection(connection_id)
        if record.is_system:
            raise SystemConnectionError(f"系统内置连接不允许删除: {record.name}")

        self.store.delete_connection(connection_id)
        await self.dispose(connection_id)

    # ============ 连接池 ============

    def get_params(self, record: DatabaseConnection) -> ConnectionParams:
        """从连接记录构建驱动参数（解密密码）"""
        return ConnectionParams(
            type=record.type,
            host=record.host,
            port=record.port,
            username=record.username,
            password=self.encryption_service.decrypt_password(record.encrypted_password),
            database=record.database,
            filename=record.filename,
            ssl=bool(record.ssl),
        )

    def get_driver(self, connection_id: int) -> DatabaseDriver:
        """获取连接对应的驱动"""
        record = self.store.get_connection(connection_id)
        return DatabaseDriverFactory.get_driver(record.type)

    def _get_or_create_engine(self, connection_id: int) -> Tuple[DatabaseDriver, AsyncEngine]:
        """
        获取或创建连接池

        Raises:
            DatabaseConnectionError: 连接已禁用或数据库类型不支持
        """
        record = self.store.get_connection(connection_id)
        if record.status != ConnectionStatus.ENABLED.value:
            raise DatabaseConnectionError(f"数据库连接已禁用: {record.name}")

        # 如果连接池已存在，直接返回
        if connection_id in self._engines:
            return self._engines[connection_id]

        driver = DatabaseDriverFactory.get_driver(record.type)
        engine = driver.create_engine(
            self.get_params(record),
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

        self._engines[connection_id] = (driver, engine)
        logger.info(f"创建连接池: {record.name} ({record.type}), pool_size={self.pool_size}")
        return driver, engine

    @asynccontextmanager
    async def lease(self, connection_id: int) -> AsyncIterator[Tuple[DatabaseDriver, AsyncConnection]]:
        """
        从连接池借出一个连接

        退出上下文（包括超时和取消）时连接归还连接池。

        Yields:
            (驱动, 异步连接)

        Raises:
            DatabaseConnectionError: 无法建立连接
        """
        driver, engine = self._get_or_create_engine(connection_id)

        conn = engine.connect()
        try:
            await conn.start()
        except Exception as e:
            log_database_connection_error(
                logger, {"connection_id": connection_id, "type": driver.get_db_type()}, e
            )
            raise DatabaseConnectionError(f"无法连接数据库: {driver.error_message(e)}") from e

        try:
            yield driver, conn
        finally:
            await conn.close()

    async def dispose(self, connection_id: int) -> None:
        """释放连接池"""
        entry = self._engines.pop(connection_id, None)
        if entry is not None:
            await entry[1].dispose()
            logger.info(f"释放连接池: connection_id={connection_id}")

    async def close_all(self) -> None:
        """释放所有连接池（关闭应用时调用）"""
        for connection_id in list(self._engines):
            await self.dispose(connection_id)

    def has_pool(self, connection_id: int) -> bool:
        """连接池是否已创建"""
        return connection_id in self._engines

    def pool_status(self, connection_id: int) -> Dict[str, Any]:
        """获取连接池状态，连接池尚未创建时返回 not_created"""
        entry = self._engines.get(connection_id)
        if entry is None:
            return {"status": "not_created"}
        return get_pool_status(entry[1])

    # ============ 连接测试 ============

    async def test_connection(self, data: DatabaseConnectionCreate) -> ConnectionTestResult:
        """
        测试连接参数是否可用，不保存记录，不会抛出异常
        """
        values = data.model_dump(mode="json")
        try:
            validate_connection_fields(values)
            driver = DatabaseDriverFactory.get_driver(values["type"])
        except (ConnectionValidationError, DatabaseConnectionError) as e:
            return ConnectionTestResult(ok=False, message=str(e))

        params = ConnectionParams(**{
            key: values.get(key) for key in ConnectionParams.model_fields
        })
        return await driver.test_connection(params, timeout=self.query_timeout)

    # ============ 转换 ============

    @staticmethod
    def to_view(record: DatabaseConnection) -> DatabaseConnectionView:
        """连接记录 -> 响应对象（不含密码）"""
        return DatabaseConnectionView(
            id=record.id,
            name=record.name,
            type=record.type,
            host=record.host,
            port=record.port,
            username=record.username,
            database=record.database,
            filename=record.filename,
            ssl=bool(record.ssl),
            status=record.status,
            is_system=bool(record.is_system),
            has_password=bool(record.encrypted_password),
            created_at=to_iso_string(record.created_at),
            updated_at=to_iso_string(record.updated_at),
        )


# 全局连接注册表实例
_connection_registry = None


def get_connection_registry() -> ConnectionRegistry:
    """获取全局连接注册表实例"""
    global _connection_registry
    if _connection_registry is None:
        _connection_registry = ConnectionRegistry()
    return _connection_registry
