"""
表结构读取服务
从目标数据库读取表和字段信息，并生成代码生成器的列配置草稿
"""
import asyncio
from typing import Optional

from ..utils.logger import get_logger, log_error_with_context
from .connection_registry import ConnectionRegistry, get_connection_registry
from .dto import ColumnImport, ColumnListing, TableListing
from .errors import DatabaseConnectionError, SchemaIntrospectionError
from .type_mapping import build_default_columns

logger = get_logger(__name__)


class SchemaIntrospectionService:
    """表结构读取服务"""

    def __init__(self, registry: Optional[ConnectionRegistry] = None):
        self.registry = registry or get_connection_registry()

    async def get_all_tables(self, connection_id: int) -> TableListing:
        """
        获取数据库中的所有表

        Args:
            connection_id: 数据库连接ID

        Returns:
            表列表，部分表注释读取失败时记录在 warnings 中
        """
        async def _list():
            async with self.registry.lease(connection_id) as (driver, conn):
                return await driver.list_tables(conn)

        listing = await self._with_timeout(_list(), connection_id)
        for warning in listing.warnings:
            logger.warning(f"读取表列表不完整: connection_id={connection_id}, {warning}")
        logger.info(f"读取表列表: connection_id={connection_id}, tables={len(listing.tables)}")
        return listing

    async def describe_table(self, connection_id: int, table_name: str) -> ColumnListing:
        """
        获取表的字段信息

        Raises:
            ValueError: 表名为空
            SchemaIntrospectionError: 表不存在或没有字段
        """
        if not table_name or not table_name.strip():
            raise ValueError("表名不能为空")

        async def _describe():
            async with self.registry.lease(connection_id) as (driver, conn):
                return await driver.describe_table(conn, table_name)

        try:
            listing = await self._with_timeout(_describe(), connection_id)
        except SchemaIntrospectionError as e:
            log_error_with_context(
                logger, "读取表结构失败", e,
                {"connection_id": connection_id, "table_name": table_name}
            )
            raise

        for warning in listing.warnings:
            logger.warning(f"读取表结构不完整: connection_id={connection_id}, {warning}")
        return listing

    async def import_table_columns(self, connection_id: int, table_name: str) -> ColumnImport:
        """
        读取表结构并生成列配置草稿（尚未关联代码生成器）

        Args:
            connection_id: 数据库连接ID
            table_name: 表名

        Returns:
            列配置草稿，按字段顺序排列，序号作为初始 sort
        """
        listing = await self.describe_table(connection_id, table_name)
        dialect = self.registry.get_driver(connection_id).get_db_type()
        columns = build_default_columns(dialect, listing.columns)
        logger.info(f"导入表字段: connection_id={connection_id}, table={table_name}, columns={len(columns)}")
        return ColumnImport(table_name=table_name, columns=columns, warnings=listing.warnings)

    async def _with_timeout(self, operation, connection_id: int):
        timeout = self.registry.query_timeout
        try:
            return await asyncio.wait_for(operation, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"读取表结构超时: connection_id={connection_id}, timeout={timeout}s")
            raise DatabaseConnectionError(f"读取表结构超时（{timeout}秒）") from e
