"""
服务层包
"""
from .encryption_service import EncryptionService, get_encryption_service
from .cache_service import CacheService, get_render_cache
from .metadata_store import MetadataStore
from .connection_registry import ConnectionRegistry, get_connection_registry
from .schema_introspection import SchemaIntrospectionService
from .column_sync import ColumnSyncService, merge_columns
from .code_generation import CodeGenerationService, build_archive, render
from .sql_executor import SqlExecutor
from .type_mapping import TypeMapping, map_native_type
from .workbench_service import WorkbenchService

__all__ = [
    "EncryptionService",
    "get_encryption_service",
    "CacheService",
    "get_render_cache",
    "MetadataStore",
    "ConnectionRegistry",
    "get_connection_registry",
    "SchemaIntrospectionService",
    "ColumnSyncService",
    "merge_columns",
    "CodeGenerationService",
    "build_archive",
    "render",
    "SqlExecutor",
    "TypeMapping",
    "map_native_type",
    "WorkbenchService",
]
