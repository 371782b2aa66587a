"""
元数据存储
封装数据库连接、代码生成器及列配置的读写，调用方无需关心底层SQL
"""
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..database import Database, get_database
from ..models import CodeGenerator, CodeGeneratorColumn as ColumnModel, DatabaseConnection
from .dto import (
    CodeGeneratorColumn,
    CodeGeneratorColumnUpdate,
    CodeGeneratorConfig,
    GenerateOptions,
)
from .errors import (
    ConnectionNotFoundError,
    ConnectionValidationError,
    GeneratorNotFoundError,
    GeneratorValidationError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

# 列配置中需要持久化的字段（id 与 generator_id 单独处理）
COLUMN_FIELDS = (
    "column_name", "column_comment", "column_type", "mapped_type",
    "is_pk", "is_increment", "is_required", "is_insert", "is_edit",
    "is_list", "is_query", "query_type", "html_type", "dict_type", "sort",
)


def column_to_dto(row: ColumnModel) -> CodeGeneratorColumn:
    """ORM列记录 -> DTO"""
    values = {field: getattr(row, field) for field in COLUMN_FIELDS}
    return CodeGeneratorColumn(id=row.id, generator_id=row.generator_id, **values)


def _column_values(column: CodeGeneratorColumn) -> Dict[str, Any]:
    """DTO -> 可写入ORM的字段值（枚举转为字符串）"""
    values = column.model_dump(include=set(COLUMN_FIELDS), mode="json")
    return values


def generator_to_dto(row: CodeGenerator) -> CodeGeneratorConfig:
    """ORM生成器记录 -> DTO"""
    options = json.loads(row.options) if row.options else {}
    return CodeGeneratorConfig(
        id=row.id,
        name=row.name,
        connection_id=row.connection_id,
        table_name=row.table_name,
        module_name=row.module_name,
        business_name=row.business_name,
        options=GenerateOptions(**options),
        remark=row.remark,
    )


def sort_columns(columns: List[CodeGeneratorColumn]) -> List[CodeGeneratorColumn]:
    """按 sort、列名排序，保证输出顺序稳定"""
    return sorted(columns, key=lambda column: (column.sort, column.column_name))


class MetadataStore:
    """元数据存储类"""

    def __init__(self, database: Optional[Database] = None):
        """
        初始化元数据存储

        Args:
            database: 元数据库实例，如果为None则使用全局实例
        """
        self.db = database or get_database()

    # ============ 数据库连接 ============

    def add_connection(self, values: Dict[str, Any]) -> DatabaseConnection:
        """保存新的数据库连接记录"""
        with self.db.get_session() as session:
            record = DatabaseConnection(**values)
            session.add(record)
            session.flush()
            session.refresh(record)
            logger.info(f"保存数据库连接: id={record.id}, name={record.name}, type={record.type}")
            return record

    def get_connection(self, connection_id: int) -> DatabaseConnection:
        """
        获取数据库连接记录

        Raises:
            ConnectionNotFoundError: 记录不存在
        """
        with self.db.get_session() as session:
            record = session.get(DatabaseConnection, connection_id)
            if record is None:
                raise ConnectionNotFoundError(connection_id)
            return record

    def list_connections(
        self,
        name: Optional[str] = None,
        db_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[int, List[DatabaseConnection]]:
        """
        分页查询数据库连接

        Returns:
            (总数, 当前页记录)
        """
        with self.db.get_session() as session:
            query = session.query(DatabaseConnection)
            if name:
                query = query.filter(DatabaseConnection.name.contains(name))
            if db_type:
                query = query.filter(DatabaseConnection.type == db_type)
            if status:
                query = query.filter(DatabaseConnection.status == status)

            total = query.count()
            records = (
                query.order_by(DatabaseConnection.id.desc())
                .offset((max(page, 1) - 1) * page_size)
                .limit(page_size)
                .all()
            )
            return total, records

    def update_connection(self, connection_id: int, changes: Dict[str, Any]) -> DatabaseConnection:
        """修改数据库连接记录的指定字段"""
        with self.db.get_session() as session:
            record = session.get(DatabaseConnection, connection_id)
            if record is None:
                raise ConnectionNotFoundError(connection_id)
            for field, value in changes.items():
                setattr(record, field, value)
            session.flush()
            session.refresh(record)
            return record

    def delete_connection(self, connection_id: int) -> None:
        """
        删除数据库连接记录

        Raises:
            ConnectionValidationError: 仍有代码生成器引用该连接
        """
        with self.db.get_session() as session:
            record = session.get(DatabaseConnection, connection_id)
            if record is None:
                raise ConnectionNotFoundError(connection_id)
            in_use = session.query(CodeGenerator).filter_by(connection_id=connection_id).count()
            if in_use:
                raise ConnectionValidationError(
                    f"数据库连接仍被 {in_use} 个代码生成器使用，无法删除: {connection_id}"
                )
            session.delete(record)
        logger.info(f"删除数据库连接: id={connection_id}")

    # ============ 代码生成器 ============

    def add_generator(self, config: CodeGeneratorConfig) -> CodeGeneratorConfig:
        """
        保存代码生成器配置

        Raises:
            GeneratorValidationError: 名称已存在
        """
        with self.db.get_session() as session:
            if session.get(DatabaseConnection, config.connection_id) is None:
                raise ConnectionNotFoundError(config.connection_id)
            if session.query(CodeGenerator).filter_by(name=config.name).first():
                raise GeneratorValidationError(f"名称 \"{config.name}\" 已存在，请使用不同的名称")

            record = CodeGenerator(
                name=config.name,
                connection_id=config.connection_id,
                table_name=config.table_name,
                module_name=config.module_name,
                business_name=config.business_name,
                options=json.dumps(config.options.model_dump(), sort_keys=True),
                remark=config.remark,
            )
            session.add(record)
            session.flush()
            logger.info(f"保存代码生成器配置: id={record.id}, name={record.name}")
            return generator_to_dto(record)

    def get_generator(self, generator_id: int) -> CodeGeneratorConfig:
        """
        获取代码生成器配置

        Raises:
            GeneratorNotFoundError: 配置不存在
        """
        with self.db.get_session() as session:
            record = session.get(CodeGenerator, generator_id)
            if record is None:
                raise GeneratorNotFoundError(generator_id)
            return generator_to_dto(record)

    def list_generators(self, connection_id: Optional[int] = None) -> List[CodeGeneratorConfig]:
        """查询代码生成器配置，可按数据库连接过滤"""
        with self.db.get_session() as session:
            query = session.query(CodeGenerator)
            if connection_id is not None:
                query = query.filter_by(connection_id=connection_id)
            return [generator_to_dto(record) for record in query.order_by(CodeGenerator.id).all()]

    def update_generator(self, generator_id: int, changes: Dict[str, Any]) -> CodeGeneratorConfig:
        """
        修改代码生成器配置

        Raises:
            GeneratorValidationError: 新名称已被其他配置使用
        """
        with self.db.get_session() as session:
            record = session.get(CodeGenerator, generator_id)
            if record is None:
                raise GeneratorNotFoundError(generator_id)

            new_name = changes.get("name")
            if new_name and new_name != record.name:
                exists = (
                    session.query(CodeGenerator)
                    .filter(CodeGenerator.name == new_name, CodeGenerator.id != generator_id)
                    .first()
                )
                if exists:
                    raise GeneratorValidationError(f"名称 \"{new_name}\" 已被其他记录使用，请使用不同的名称")

            if "connection_id" in changes and session.get(DatabaseConnection, changes["connection_id"]) is None:
                raise ConnectionNotFoundError(changes["connection_id"])

            for field, value in changes.items():
                if field == "options":
                    value = json.dumps(GenerateOptions(**value).model_dump(), sort_keys=True)
                setattr(record, field, value)
            session.flush()
            return generator_to_dto(record)

    def delete_generator(self, generator_id: int) -> None:
        """删除代码生成器配置及其列配置"""
        with self.db.get_session() as session:
            record = session.get(CodeGenerator, generator_id)
            if record is None:
                raise GeneratorNotFoundError(generator_id)
            session.delete(record)
        logger.info(f"删除代码生成器配置: id={generator_id}")

    def list_columns(self, generator_id: int) -> List[CodeGeneratorColumn]:
        """获取代码生成器的全部列配置，按 sort 排序"""
        with self.db.get_session() as session:
            if session.get(CodeGenerator, generator_id) is None:
                raise GeneratorNotFoundError(generator_id)
            rows = session.query(ColumnModel).filter_by(generator_id=generator_id).all()
            return sort_columns([column_to_dto(row) for row in rows])

    def attach_columns(
        self,
        generator_id: int,
        columns: List[CodeGeneratorColumn]
    ) -> List[CodeGeneratorColumn]:
        """
        用导入的列草稿替换生成器的全部列配置

        Args:
            generator_id: 代码生成器ID
            columns: 列草稿（id 会被忽略）

        Returns:
            持久化后的列配置
        """
        names = [column.column_name for column in columns]
        if len(names) != len(set(names)):
            raise GeneratorValidationError(f"列名重复，无法保存: generator_id={generator_id}")

        with self.db.get_session() as session:
            generator = session.get(CodeGenerator, generator_id)
            if generator is None:
                raise GeneratorNotFoundError(generator_id)

            session.query(ColumnModel).filter_by(generator_id=generator_id).delete()
            rows = [ColumnModel(generator_id=generator_id, **_column_values(column)) for column in columns]
            session.add_all(rows)
            session.flush()
            logger.info(f"导入列配置: generator_id={generator_id}, columns={len(rows)}")
            return sort_columns([column_to_dto(row) for row in rows])

    def update_column(self, column_id: int, changes: CodeGeneratorColumnUpdate) -> CodeGeneratorColumn:
        """
        操作员修改单个列配置

        Raises:
            GeneratorValidationError: 列不存在或修改后违反约束
        """
        with self.db.get_session() as session:
            row = session.get(ColumnModel, column_id)
            if row is None:
                raise GeneratorValidationError(f"列配置不存在: {column_id}")

            merged = column_to_dto(row).model_copy(update=changes.model_dump(exclude_unset=True))
            # 重新校验，确保修改后的组合仍然合法
            merged = CodeGeneratorColumn.model_validate(merged.model_dump())
            for field, value in _column_values(merged).items():
                setattr(row, field, value)
            session.flush()
            return column_to_dto(row)

    def merge_columns_atomically(
        self,
        generator_id: int,
        merge: Callable[[List[CodeGeneratorColumn]], List[CodeGeneratorColumn]]
    ) -> List[CodeGeneratorColumn]:
        """
        在同一个事务中读取、合并并写回生成器的列配置

        事务内先锁定生成器记录，再读取当前列配置交给 merge 计算新的列集合，
        然后按 id 增量写回：id 已存在的更新变化的字段，id 为空的新增，
        不在结果中的删除。任何异常都会整体回滚。

        Args:
            generator_id: 代码生成器ID
            merge: 输入当前列配置，返回新的列配置（不得修改输入）

        Returns:
            持久化后的列配置
        """
        with self.db.get_session() as session:
            generator = session.execute(
                select(CodeGenerator).where(CodeGenerator.id == generator_id).with_for_update()
            ).scalar_one_or_none()
            if generator is None:
                raise GeneratorNotFoundError(generator_id)

            rows = session.query(ColumnModel).filter_by(generator_id=generator_id).all()
            rows_by_id = {row.id: row for row in rows}
            current = sort_columns([column_to_dto(row) for row in rows])

            merged = merge(current)

            kept_ids = {column.id for column in merged if column.id is not None}
            unknown = kept_ids - set(rows_by_id)
            if unknown:
                raise GeneratorValidationError(f"合并结果包含未知的列ID: {sorted(unknown)}")

            for row in rows:
                if row.id not in kept_ids:
                    session.delete(row)
            # 先删除再写入，避免唯一约束冲突
            session.flush()

            persisted = []
            for column in merged:
                values = _column_values(column)
                if column.id is None:
                    row = ColumnModel(generator_id=generator_id, **values)
                    session.add(row)
                else:
                    row = rows_by_id[column.id]
                    for field, value in values.items():
                        if getattr(row, field) != value:
                            setattr(row, field, value)
                persisted.append(row)

            try:
                session.flush()
            except IntegrityError as e:
                raise GeneratorValidationError(f"写入列配置违反约束: {e.orig}") from e

            return sort_columns([column_to_dto(row) for row in persisted])
