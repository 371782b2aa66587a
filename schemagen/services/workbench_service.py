"""
工作台服务
对外提供的统一入口：连接管理、表结构读取、列配置同步、代码生成、SQL执行
"""
from typing import List, Optional, Union

from ..database import Database, get_database
from ..utils.logger import get_logger
from .cache_service import CacheService
from .code_generation import CodeGenerationService
from .column_sync import ColumnSyncService
from .connection_registry import ConnectionRegistry
from .dto import (
    AffectedRows,
    CodeGeneratorColumn,
    CodeGeneratorColumnUpdate,
    CodeGeneratorConfig,
    CodeGeneratorUpdate,
    ColumnImport,
    ConnectionPage,
    ConnectionStatus,
    ConnectionTestResult,
    DatabaseConnectionCreate,
    DatabaseConnectionUpdate,
    DatabaseConnectionView,
    GeneratedArchive,
    GeneratedFile,
    QueryResult,
    TableListing,
)
from .encryption_service import EncryptionService
from .metadata_store import MetadataStore
from .schema_introspection import SchemaIntrospectionService
from .sql_executor import SqlExecutor
from .templates import TemplateProvider

logger = get_logger(__name__)


class WorkbenchService:
    """工作台服务类"""

    def __init__(
        self,
        database: Optional[Database] = None,
        encryption_service: Optional[EncryptionService] = None,
        template_provider: Optional[TemplateProvider] = None,
        render_cache: Optional[CacheService] = None
    ):
        """
        初始化工作台服务

        Args:
            database: 元数据库，默认使用全局实例
            encryption_service: 密码加密服务，默认使用全局实例
            template_provider: 模板提供者，默认使用内置模板
            render_cache: 渲染缓存，默认使用全局缓存
        """
        self.store = MetadataStore(database or get_database())
        self.registry = ConnectionRegistry(self.store, encryption_service)
        self.introspection = SchemaIntrospectionService(self.registry)
        self.column_sync = ColumnSyncService(self.store, self.introspection)
        self.code_generation = CodeGenerationService(self.store, template_provider, render_cache)
        self.sql_executor = SqlExecutor(self.registry)

    # ============ 表结构与代码生成 ============

    async def list_tables(self, connection_id: int) -> TableListing:
        """获取数据库中的表"""
        return await self.introspection.get_all_tables(connection_id)

    async def import_columns(self, connection_id: int, table_name: str) -> ColumnImport:
        """读取表结构，返回列配置草稿"""
        return await self.introspection.import_table_columns(connection_id, table_name)

    async def sync_columns(self, generator_id: int) -> List[CodeGeneratorColumn]:
        """按最新表结构同步列配置"""
        return await self.column_sync.sync_table_columns(generator_id)

    async def preview_code(self, generator_id: int) -> List[GeneratedFile]:
        """预览生成的代码"""
        return self.code_generation.preview_code(generator_id)

    async def generate_code(self, generator_id: int) -> GeneratedArchive:
        """生成代码压缩包"""
        return self.code_generation.generate_code(generator_id)

    # ============ 连接测试与SQL执行 ============

    async def test_connection(self, connection_config: DatabaseConnectionCreate) -> ConnectionTestResult:
        """测试连接参数，不会抛出异常"""
        return await self.registry.test_connection(connection_config)

    async def execute_sql(self, connection_id: int, sql: str) -> Union[QueryResult, AffectedRows]:
        """执行SQL"""
        return await self.sql_executor.execute_sql(connection_id, sql)

    async def get_table_data(
        self,
        connection_id: int,
        table_name: str,
        page: int = 1,
        page_size: int = 10
    ) -> QueryResult:
        """分页浏览表数据"""
        return await self.sql_executor.get_table_data(connection_id, table_name, page, page_size)

    # ============ 数据库连接管理 ============

    async def create_connection(self, data: DatabaseConnectionCreate) -> DatabaseConnectionView:
        return self.registry.create(data)

    async def get_connection(self, connection_id: int) -> DatabaseConnectionView:
        return self.registry.get(connection_id)

    async def list_connections(
        self,
        name: Optional[str] = None,
        db_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> ConnectionPage:
        return self.registry.list(name=name, db_type=db_type, status=status, page=page, page_size=page_size)

    async def update_connection(
        self,
        connection_id: int,
        data: DatabaseConnectionUpdate
    ) -> DatabaseConnectionView:
        return await self.registry.update(connection_id, data)

    async def set_connection_status(
        self,
        connection_id: int,
        status: ConnectionStatus
    ) -> DatabaseConnectionView:
        return await self.registry.set_status(connection_id, status)

    async def delete_connection(self, connection_id: int) -> None:
        await self.registry.delete(connection_id)

    # ============ 代码生成器管理 ============

    async def create_generator(self, config: CodeGeneratorConfig) -> CodeGeneratorConfig:
        return self.store.add_generator(config)

    async def get_generator(self, generator_id: int) -> CodeGeneratorConfig:
        return self.store.get_generator(generator_id)

    async def list_generators(self, connection_id: Optional[int] = None) -> List[CodeGeneratorConfig]:
        return self.store.list_generators(connection_id)

    async def update_generator(self, generator_id: int, data: CodeGeneratorUpdate) -> CodeGeneratorConfig:
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "remark"
        }
        return self.store.update_generator(generator_id, changes)

    async def delete_generator(self, generator_id: int) -> None:
        self.store.delete_generator(generator_id)

    async def attach_columns(
        self,
        generator_id: int,
        columns: List[CodeGeneratorColumn]
    ) -> List[CodeGeneratorColumn]:
        """保存导入的列配置草稿，替换原有列配置"""
        return self.store.attach_columns(generator_id, columns)

    async def list_columns(self, generator_id: int) -> List[CodeGeneratorColumn]:
        return self.store.list_columns(generator_id)

    async def update_column(self, column_id: int, changes: CodeGeneratorColumnUpdate) -> CodeGeneratorColumn:
        return self.store.update_column(column_id, changes)

    async def close(self) -> None:
        """释放所有连接池"""
        await self.registry.close_all()
        logger.info("工作台服务已关闭")
