"""
SQL执行服务
在已登记的数据库连接上执行任意SQL，返回与数据库类型无关的结果
"""
import asyncio
import time
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..utils.logger import get_logger, log_sql_error
from .connection_registry import ConnectionRegistry, get_connection_registry
from .dto import AffectedRows, QueryResult
from .errors import SqlConnectionLostError, SqlTimeoutError

logger = get_logger(__name__)

MAX_PAGE_SIZE = 1000


class SqlExecutor:
    """SQL执行器"""

    def __init__(self, registry: Optional[ConnectionRegistry] = None):
        self.registry = registry or get_connection_registry()

    async def execute_sql(self, connection_id: int, sql: str) -> Union[QueryResult, AffectedRows]:
        """
        执行SQL语句

        Args:
            connection_id: 数据库连接ID
            sql: SQL语句，原样交给数据库执行

        Returns:
            查询语句返回 QueryResult，其他语句返回 AffectedRows（已提交）

        Raises:
            ValueError: SQL为空
            SqlExecutionError: 执行失败（语法、权限、连接中断、超时）
        """
        if not sql or not sql.strip():
            raise ValueError("SQL语句不能为空")

        logger.debug(
            f"准备执行SQL: connection_id={connection_id}, "
            f"SQL: {sql[:200]}{'...' if len(sql) > 200 else ''}"
        )
        result = await self._run(connection_id, sql)

        if isinstance(result, QueryResult):
            logger.info(
                f"SQL查询成功: connection_id={connection_id}, rows={result.row_count}, "
                f"columns={len(result.fields)}, time={result.execution_time:.1f}ms"
            )
        else:
            logger.info(
                f"SQL执行成功: connection_id={connection_id}, affected_rows={result.affected_rows}, "
                f"time={result.execution_time:.1f}ms"
            )
        return result

    async def get_table_data(
        self,
        connection_id: int,
        table_name: str,
        page: int = 1,
        page_size: int = 10
    ) -> QueryResult:
        """
        分页浏览表数据

        Args:
            connection_id: 数据库连接ID
            table_name: 表名
            page: 页码，从1开始
            page_size: 每页行数，1 到 1000

        Raises:
            ValueError: 参数不合法
        """
        if not table_name or not table_name.strip():
            raise ValueError("表名不能为空")
        if page < 1:
            raise ValueError(f"页码必须大于等于1: {page}")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValueError(f"每页行数必须在1到{MAX_PAGE_SIZE}之间: {page_size}")

        driver = self.registry.get_driver(connection_id)
        statement = driver.build_page_query(table_name, limit=page_size, offset=(page - 1) * page_size)
        result = await self._run(connection_id, statement, label=f"表数据: {table_name}")
        logger.info(
            f"读取表数据: connection_id={connection_id}, table={table_name}, "
            f"page={page}, page_size={page_size}, rows={result.row_count}"
        )
        return result

    async def _run(self, connection_id: int, statement, label: Optional[str] = None):
        """在超时限制内借出连接并执行语句"""
        timeout = self.registry.query_timeout
        sql_text = statement if isinstance(statement, str) else str(statement)

        async def _execute():
            async with self.registry.lease(connection_id) as (driver, conn):
                start = time.perf_counter()
                try:
                    result = await driver.run_query(conn, statement)
                except SQLAlchemyError as e:
                    error_class = driver.classify_error(e)
                    log_sql_error(logger, sql_text, connection_id, e)
                    raise error_class(
                        f"SQL执行失败: {driver.error_message(e)}",
                        original_message=driver.error_message(e),
                        sql=sql_text,
                    ) from e
                result.execution_time = (time.perf_counter() - start) * 1000
                return result

        try:
            return await asyncio.wait_for(_execute(), timeout=timeout)
        except asyncio.TimeoutError as e:
            log_sql_error(logger, label or sql_text, connection_id, e)
            raise SqlTimeoutError(
                f"SQL执行超时（{timeout}秒）",
                original_message=f"timeout after {timeout}s",
                sql=sql_text,
            ) from e
        except OSError as e:
            # 驱动层直接抛出的网络错误
            log_sql_error(logger, sql_text, connection_id, e)
            raise SqlConnectionLostError(f"数据库连接中断: {e}", original_message=str(e), sql=sql_text) from e
