"""
列配置同步
表结构变化后，将数据库中的最新字段合并到已保存的列配置中，保留操作员的手工修改
"""
from typing import Dict, List, Optional

from ..utils.logger import get_logger, log_error_with_context
from .dto import CodeGeneratorColumn
from .errors import GeneratorNotFoundError, ReconciliationConflictError
from .metadata_store import MetadataStore, sort_columns
from .schema_introspection import SchemaIntrospectionService
from .type_mapping import build_default_columns

logger = get_logger(__name__)

# 始终以数据库为准的字段
SCHEMA_OWNED_FIELDS = ("column_type", "is_pk", "is_increment", "is_required")


def merge_columns(
    existing: List[CodeGeneratorColumn],
    live: List[CodeGeneratorColumn],
    generator_id: Optional[int] = None
) -> List[CodeGeneratorColumn]:
    """
    三方合并已保存的列配置与数据库最新字段

    - 两边都有的列：保留原记录（包括 id 和操作员修改过的字段），
      刷新 column_type、is_pk、is_increment、is_required；
      类型变化时同时刷新 mapped_type；原注释为空时才使用数据库注释
    - 只在数据库中存在的列：按类型映射生成默认配置，sort 排在现有最大值之后
    - 只在已保存配置中存在的列：删除

    不修改输入，结果按 (sort, column_name) 排序。

    Args:
        existing: 已保存的列配置
        live: 根据数据库最新字段生成的列配置草稿（按字段顺序）
        generator_id: 新增列所属的代码生成器ID

    Returns:
        合并后的列配置
    """
    live_by_name: Dict[str, CodeGeneratorColumn] = {column.column_name: column for column in live}
    existing_names = {column.column_name for column in existing}

    merged: List[CodeGeneratorColumn] = []
    for column in existing:
        fresh = live_by_name.get(column.column_name)
        if fresh is None:
            continue

        updates = {field: getattr(fresh, field) for field in SCHEMA_OWNED_FIELDS}
        if fresh.column_type != column.column_type:
            updates["mapped_type"] = fresh.mapped_type
            if fresh.html_type != column.html_type:
                logger.warning(
                    f"字段类型已变化，保留手工设置的表单控件: column={column.column_name}, "
                    f"{column.column_type} -> {fresh.column_type}, html_type={column.html_type.value}"
                )
        if not (column.column_comment or "").strip() and fresh.column_comment:
            updates["column_comment"] = fresh.column_comment

        merged.append(CodeGeneratorColumn.model_validate({**column.model_dump(), **updates}))

    next_sort = max((column.sort for column in existing), default=-1) + 1
    for column in live:
        if column.column_name in existing_names:
            continue
        merged.append(CodeGeneratorColumn.model_validate({
            **column.model_dump(),
            "id": None,
            "generator_id": generator_id,
            "sort": next_sort,
        }))
        next_sort += 1

    return sort_columns(merged)


class ColumnSyncService:
    """列配置同步服务"""

    def __init__(self, store: MetadataStore, introspection: SchemaIntrospectionService):
        self.store = store
        self.introspection = introspection

    async def sync_table_columns(self, generator_id: int) -> List[CodeGeneratorColumn]:
        """
        同步代码生成器的列配置

        先读取数据库最新字段，再在一个事务中锁定生成器、重新读取已保存的列配置、
        合并并写回。事务失败时整体回滚。

        Args:
            generator_id: 代码生成器ID

        Returns:
            同步后的列配置

        Raises:
            GeneratorNotFoundError: 代码生成器不存在
            SchemaIntrospectionError: 表不存在
            ReconciliationConflictError: 写入失败，原有列配置保持不变
        """
        config = self.store.get_generator(generator_id)
        listing = await self.introspection.describe_table(config.connection_id, config.table_name)
        dialect = self.introspection.registry.get_driver(config.connection_id).get_db_type()
        live = build_default_columns(dialect, listing.columns)

        try:
            columns = self.store.merge_columns_atomically(
                generator_id,
                lambda current: merge_columns(current, live, generator_id=generator_id),
            )
        except GeneratorNotFoundError:
            raise
        except Exception as e:
            log_error_with_context(
                logger, "同步列配置失败，已回滚", e,
                {"generator_id": generator_id, "table_name": config.table_name}
            )
            raise ReconciliationConflictError(generator_id, str(e)) from e

        logger.info(
            f"同步列配置完成: generator_id={generator_id}, table={config.table_name}, columns={len(columns)}"
        )
        return columns
