"""
数据库驱动基类
定义所有数据库驱动必须实现的接口

驱动是无状态的策略对象，实际操作的连接由连接注册表从连接池中借出后传入。
"""
import asyncio
import datetime
import decimal
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Type, Union

from sqlalchemy import inspect, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.elements import TextClause

from ..dto import (
    AffectedRows,
    ColumnListing,
    ColumnMetadata,
    ConnectionParams,
    ConnectionTestResult,
    FieldDescriptor,
    QueryResult,
    TableInfo,
    TableListing,
)
from ..errors import (
    SchemaIntrospectionError,
    SqlConnectionLostError,
    SqlExecutionError,
    SqlPermissionError,
    SqlSyntaxError,
)
from ..type_mapping import classify_native_type
from ...utils.logger import get_logger, log_database_connection_error

logger = get_logger(__name__)

# 各驱动都能识别的错误文本
GENERIC_ERROR_PATTERNS = {
    SqlSyntaxError: ("syntax error", "syntax to use near"),
    SqlPermissionError: ("permission denied", "access denied", "command denied"),
    SqlConnectionLostError: ("connection was closed", "server has gone away", "lost connection", "connection reset"),
}


def describe_value_type(value: Any) -> str:
    """根据值推断结果集字段的类型名称"""
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, decimal.Decimal)):
        return "number"
    if isinstance(value, (datetime.date, datetime.time)):
        return "Date"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "binary"
    if isinstance(value, (dict, list)):
        return "json"
    return "string"


def unique_field_names(keys) -> List[str]:
    """
    结果集字段名去重

    重名字段依次加上 _1、_2 后缀，如 SELECT 1 AS a, 2 AS a 得到 a, a_1
    """
    names = []
    seen = set()
    for key in keys:
        name = str(key)
        candidate = name
        suffix = 1
        while candidate in seen:
            candidate = f"{name}_{suffix}"
            suffix += 1
        seen.add(candidate)
        names.append(candidate)
    return names


class DatabaseDriver(ABC):
    """数据库驱动基类"""

    # SQLAlchemy 异步驱动名称，如 'mysql+aiomysql'
    drivername: str = ""
    # 默认端口，SQLite 为 None
    default_port: Optional[int] = None
    # 是否支持表、字段注释
    supports_comments: bool = True
    # 基础类型名覆盖表
    type_overrides: Dict[str, str] = {}

    @abstractmethod
    def get_db_type(self) -> str:
        """
        获取数据库类型名称

        Returns:
            数据库类型，如 'mysql', 'postgres', 'sqlite'
        """
        pass

    @abstractmethod
    def format_identifier(self, name: str) -> str:
        """
        格式化标识符（表名、列名）

        Args:
            name: 标识符名称

        Returns:
            引号包裹并转义后的标识符
        """
        pass

    @abstractmethod
    def build_page_query(self, table_name: str, limit: int, offset: int) -> TextClause:
        """
        构建分页查询语句，limit/offset 以绑定参数传入

        Args:
            table_name: 表名
            limit: 每页行数
            offset: 跳过的行数

        Returns:
            可直接执行的语句
        """
        pass

    # ============ 连接 ============

    def get_connection_url(self, params: ConnectionParams) -> URL:
        """构建SQLAlchemy连接URL"""
        return URL.create(
            self.drivername,
            username=params.username or None,
            password=params.password or None,
            host=params.host,
            port=params.port or self.default_port,
            database=params.database or None,
        )

    def get_connect_args(self, params: ConnectionParams) -> Dict[str, Any]:
        """
        获取数据库连接参数

        Returns:
            连接参数字典
        """
        return {}

    def create_engine(self, params: ConnectionParams, **engine_options) -> AsyncEngine:
        """
        创建异步引擎

        Args:
            params: 连接参数
            engine_options: 连接池参数（pool_size、max_overflow 等）
        """
        return create_async_engine(
            self.get_connection_url(params),
            connect_args=self.get_connect_args(params),
            **engine_options
        )

    async def test_connection(self, params: ConnectionParams, timeout: float) -> ConnectionTestResult:
        """
        测试连接是否可用

        使用临时引擎执行 SELECT 1，不会抛出异常，失败时返回错误信息。

        Args:
            params: 连接参数
            timeout: 超时时间（秒）
        """
        engine = None
        try:
            engine = self.create_engine(params, poolclass=NullPool)

            async def _ping():
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))

            await asyncio.wait_for(_ping(), timeout=timeout)
            return ConnectionTestResult(ok=True, message="连接成功")
        except asyncio.TimeoutError:
            logger.warning(f"连接测试超时: type={self.get_db_type()}, host={params.host}, timeout={timeout}s")
            return ConnectionTestResult(ok=False, message=f"连接超时（{timeout}秒）")
        except Exception as e:
            log_database_connection_error(logger, params.model_dump(mode="json"), e)
            return ConnectionTestResult(ok=False, message=f"连接失败: {self.error_message(e)}")
        finally:
            if engine is not None:
                await engine.dispose()

    # ============ 表结构 ============

    def type_family(self, native_type: str) -> str:
        """原始类型 -> 类型族"""
        return classify_native_type(native_type, self.type_overrides)

    def is_auto_increment(self, column: Dict[str, Any], primary_keys: Set[str]) -> bool:
        """
        判断反射得到的列是否自增

        Args:
            column: Inspector.get_columns 返回的列信息
            primary_keys: 主键列名集合
        """
        return column.get("autoincrement") is True or bool(column.get("identity"))

    async def list_tables(self, conn: AsyncConnection) -> TableListing:
        """获取表列表，按表名排序"""
        return await conn.run_sync(self._list_tables)

    def _list_tables(self, sync_conn) -> TableListing:
        inspector = inspect(sync_conn)
        listing = TableListing()
        for table_name in sorted(inspector.get_table_names()):
            comment = None
            if self.supports_comments:
                try:
                    comment = inspector.get_table_comment(table_name).get("text")
                except (NotImplementedError, SQLAlchemyError) as e:
                    listing.warnings.append(f"读取表注释失败: {table_name}: {e}")
            listing.tables.append(TableInfo(table_name=table_name, table_comment=comment))
        return listing

    async def describe_table(self, conn: AsyncConnection, table_name: str) -> ColumnListing:
        """
        获取表结构，字段按定义顺序排列

        Raises:
            SchemaIntrospectionError: 表不存在或没有任何字段
        """
        return await conn.run_sync(self._describe_table, table_name)

    def _describe_table(self, sync_conn, table_name: str) -> ColumnListing:
        inspector = inspect(sync_conn)
        if not inspector.has_table(table_name):
            raise SchemaIntrospectionError(f"表不存在: {table_name}", table_name=table_name)

        listing = ColumnListing(table_name=table_name)
        reflected = inspector.get_columns(table_name)
        if not reflected:
            raise SchemaIntrospectionError(f"表没有任何字段: {table_name}", table_name=table_name)

        primary_keys = set(inspector.get_pk_constraint(table_name).get("constrained_columns") or [])
        unique_columns = self._collect(
            listing, "唯一约束",
            lambda: [
                name
                for constraint in inspector.get_unique_constraints(table_name)
                if len(constraint["column_names"]) == 1
                for name in constraint["column_names"]
            ],
        )
        index_columns = self._collect(
            listing, "索引",
            lambda: [
                name
                for index in inspector.get_indexes(table_name)
                for name in index["column_names"]
                if name
            ],
        )
        foreign_columns = self._collect(
            listing, "外键",
            lambda: [
                name
                for foreign_key in inspector.get_foreign_keys(table_name)
                for name in foreign_key["constrained_columns"]
            ],
        )
        # 单列唯一索引也算唯一
        unique_columns |= self._collect(
            listing, "唯一索引",
            lambda: [
                index["column_names"][0]
                for index in inspector.get_indexes(table_name)
                if index.get("unique") and len(index["column_names"]) == 1
            ],
        )

        for column in reflected:
            name = column["name"]
            listing.columns.append(ColumnMetadata(
                name=name,
                native_type=self._native_type_name(column, sync_conn, listing),
                nullable=bool(column.get("nullable", True)),
                default=column.get("default"),
                is_primary=name in primary_keys,
                is_unique=name in unique_columns,
                is_index=name in primary_keys or name in index_columns or name in unique_columns,
                is_foreign=name in foreign_columns,
                is_auto_increment=self.is_auto_increment(column, primary_keys),
                comment=column.get("comment") if self.supports_comments else None,
            ))
        return listing

    @staticmethod
    def _collect(listing: ColumnListing, label: str, reader) -> Set[str]:
        """读取约束信息，失败时记录警告并返回空集合"""
        try:
            return set(reader())
        except (NotImplementedError, SQLAlchemyError) as e:
            listing.warnings.append(f"读取{label}失败: {listing.table_name}: {e}")
            return set()

    @staticmethod
    def _native_type_name(column: Dict[str, Any], sync_conn, listing: ColumnListing) -> str:
        column_type = column["type"]
        try:
            return column_type.compile(dialect=sync_conn.dialect)
        except Exception as e:
            listing.warnings.append(f"无法识别字段类型: {column['name']}: {e}")
            return column_type.__class__.__name__

    # ============ 查询 ============

    async def run_query(
        self,
        conn: AsyncConnection,
        sql: Union[str, TextClause],
        limit: Optional[int] = None
    ) -> Union[QueryResult, AffectedRows]:
        """
        执行SQL语句

        原始SQL直接交给数据库驱动执行，不解析参数占位符。

        Args:
            conn: 借出的连接
            sql: SQL文本或已绑定参数的语句
            limit: 最多返回的行数，None 表示不限制

        Returns:
            返回结果集的语句返回 QueryResult，其他语句返回 AffectedRows
        """
        if isinstance(sql, str):
            # 没有参数时不把空参数交给驱动，百分号保持原样
            result = await conn.exec_driver_sql(sql, execution_options={"no_parameters": True})
        else:
            result = await conn.execute(sql)

        if result.returns_rows:
            keys = unique_field_names(result.keys())
            rows = result.fetchmany(limit) if limit else result.fetchall()
            result.close()
            # INSERT ... RETURNING 之类的写操作同样需要提交
            await conn.commit()
            records = [dict(zip(keys, row)) for row in rows]
            return QueryResult(
                fields=[FieldDescriptor(name=key, type=self._field_type(key, records)) for key in keys],
                rows=records,
                row_count=len(records),
            )

        affected = result.rowcount if result.rowcount is not None else 0
        await conn.commit()
        return AffectedRows(affected_rows=max(affected, 0))

    @staticmethod
    def _field_type(key: str, records: List[Dict[str, Any]]) -> str:
        for record in records:
            if record[key] is not None:
                return describe_value_type(record[key])
        return "unknown"

    # ============ 错误分类 ============

    def classify_error(self, error: BaseException) -> Type[SqlExecutionError]:
        """
        将数据库异常归类

        子类通过 classify_dbapi_error 根据错误码细分，这里兜底处理通用情况。
        """
        if isinstance(error, DBAPIError):
            if error.connection_invalidated:
                return SqlConnectionLostError
            specific = self.classify_dbapi_error(error.orig)
            if specific is not None:
                return specific
        if isinstance(error, (DisconnectionError, InterfaceError, ConnectionError, OSError)):
            return SqlConnectionLostError

        message = self.error_message(error).lower()
        for error_class, patterns in GENERIC_ERROR_PATTERNS.items():
            if any(pattern in message for pattern in patterns):
                return error_class
        return SqlExecutionError

    def classify_dbapi_error(self, orig: BaseException) -> Optional[Type[SqlExecutionError]]:
        """根据驱动原始异常（错误码）归类，无法判断时返回 None"""
        return None

    @staticmethod
    def error_message(error: BaseException) -> str:
        """提取数据库返回的原始错误文本"""
        orig = getattr(error, "orig", None)
        return str(orig if orig is not None else error)
