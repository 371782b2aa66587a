"""
异常定义
代码生成核心对外抛出的所有业务异常
"""
from typing import Optional


class SchemaGenError(Exception):
    """所有业务异常的基类"""


class DatabaseConnectionError(SchemaGenError):
    """连接失败：主机不可达、认证失败、数据库类型不支持或连接已禁用"""


class ConnectionNotFoundError(SchemaGenError):
    """数据库连接记录不存在"""

    def __init__(self, connection_id: int):
        self.connection_id = connection_id
        super().__init__(f"数据库连接不存在: {connection_id}")


class ConnectionValidationError(SchemaGenError):
    """连接参数不满足约束"""


class SystemConnectionError(SchemaGenError):
    """系统内置连接不允许删除或修改关键字段"""


class GeneratorNotFoundError(SchemaGenError):
    """代码生成器配置不存在"""

    def __init__(self, generator_id: int):
        self.generator_id = generator_id
        super().__init__(f"代码生成器配置不存在: {generator_id}")


class SchemaIntrospectionError(SchemaGenError):
    """读取表结构失败（表不存在、被删除或重命名）"""

    def __init__(self, message: str, table_name: Optional[str] = None):
        self.table_name = table_name
        super().__init__(message)


class ReconciliationConflictError(SchemaGenError):
    """同步列信息的事务失败，原有列配置保持不变"""

    def __init__(self, generator_id: int, reason: str):
        self.generator_id = generator_id
        self.reason = reason
        super().__init__(f"同步列信息失败，已回滚: generator_id={generator_id}, 原因: {reason}")


class TemplateRenderError(SchemaGenError):
    """模板渲染失败，整个生成器的代码生成被中止"""

    def __init__(
        self,
        generator_id: Optional[int],
        message: str,
        column_name: Optional[str] = None,
        template_name: Optional[str] = None
    ):
        self.generator_id = generator_id
        self.column_name = column_name
        self.template_name = template_name
        location = [f"generator_id={generator_id}"]
        if column_name:
            location.append(f"column={column_name}")
        if template_name:
            location.append(f"template={template_name}")
        super().__init__(f"{message} ({', '.join(location)})")


class SqlExecutionError(SchemaGenError):
    """
    SQL执行失败

    original_message 保留数据库返回的原始错误文本，便于排查。
    """

    kind = "execution"

    def __init__(self, message: str, original_message: Optional[str] = None, sql: Optional[str] = None):
        self.original_message = original_message or message
        self.sql = sql
        super().__init__(message)


class SqlSyntaxError(SqlExecutionError):
    kind = "syntax"


class SqlPermissionError(SqlExecutionError):
    kind = "permission"


class SqlConnectionLostError(SqlExecutionError):
    kind = "connection_lost"


class SqlTimeoutError(SqlExecutionError):
    kind = "timeout"


class GeneratorValidationError(SchemaGenError):
    """代码生成器或列配置不满足约束（名称重复、列名重复等）"""
