"""
数据传输对象 (Data Transfer Objects)
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class DatabaseType(str, Enum):
    """支持的数据库类型"""
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MSSQL = "mssql"
    MARIADB = "mariadb"
    SQLITE = "sqlite"


class ConnectionStatus(str, Enum):
    """连接状态"""
    ENABLED = "enabled"
    DISABLED = "disabled"


class QueryType(str, Enum):
    """列表查询条件类型"""
    EQ = "EQ"  # 等于
    NE = "NE"  # 不等于
    GT = "GT"  # 大于
    GTE = "GTE"  # 大于等于
    LT = "LT"  # 小于
    LTE = "LTE"  # 小于等于
    LIKE = "LIKE"  # 模糊匹配
    BETWEEN = "BETWEEN"  # 范围


class HtmlType(str, Enum):
    """表单控件类型"""
    INPUT = "input"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATETIME = "datetime"
    UPLOAD = "upload"
    IMAGE = "image"


# 生成代码可识别的字段类型
MAPPED_TYPES = ("string", "number", "boolean", "Date")


# ============ 数据库连接 ============

class DatabaseConnectionCreate(BaseModel):
    """创建数据库连接（也用于连接测试）"""
    name: str = Field(..., description="连接名称")
    type: DatabaseType = Field(..., description="数据库类型")
    host: Optional[str] = Field(None, description="主机地址")
    port: Optional[int] = Field(None, description="端口，不填时使用默认端口")
    username: Optional[str] = Field(None, description="用户名")
    password: Optional[str] = Field(None, description="密码")
    database: Optional[str] = Field(None, description="数据库名称")
    filename: Optional[str] = Field(None, description="SQLite 文件路径")
    ssl: bool = Field(False, description="是否使用SSL连接")
    status: ConnectionStatus = ConnectionStatus.ENABLED
    is_system: bool = Field(False, description="是否系统内置连接")


class DatabaseConnectionUpdate(BaseModel):
    """更新数据库连接，只修改显式传入的字段"""
    name: Optional[str] = None
    type: Optional[DatabaseType] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    filename: Optional[str] = None
    ssl: Optional[bool] = None
    status: Optional[ConnectionStatus] = None


class DatabaseConnectionView(BaseModel):
    """数据库连接响应，不包含密码"""
    id: int
    name: str
    type: DatabaseType
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    database: Optional[str] = None
    filename: Optional[str] = None
    ssl: bool = False
    status: ConnectionStatus
    is_system: bool = False
    has_password: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ConnectionParams(BaseModel):
    """驱动建立连接所需的参数（密码为明文，仅在内存中使用）"""
    type: DatabaseType
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    filename: Optional[str] = None
    ssl: bool = False


class ConnectionTestResult(BaseModel):
    """连接测试结果"""
    ok: bool
    message: str


class ConnectionPage(BaseModel):
    """数据库连接分页结果"""
    items: List[DatabaseConnectionView] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10


# ============ 表结构 ============

class TableInfo(BaseModel):
    """表信息"""
    table_name: str
    table_comment: Optional[str] = None


class TableListing(BaseModel):
    """表列表，warnings 记录读取过程中被跳过的部分"""
    tables: List[TableInfo] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ColumnMetadata(BaseModel):
    """数据库返回的原始列信息"""
    name: str
    native_type: str
    nullable: bool = True
    default: Optional[Any] = None
    is_primary: bool = False
    is_unique: bool = False
    is_index: bool = False
    is_foreign: bool = False
    is_auto_increment: bool = False
    comment: Optional[str] = None


class ColumnListing(BaseModel):
    """表的列信息，按字段顺序排列"""
    table_name: str
    columns: List[ColumnMetadata] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# ============ 代码生成器 ============

class GenerateOptions(BaseModel):
    """代码生成选项"""
    generate_api: bool = True
    generate_crud: bool = True
    generate_routes: bool = True
    generate_test: bool = False


class CodeGeneratorConfig(BaseModel):
    """代码生成器配置"""
    id: Optional[int] = None
    name: str
    connection_id: int
    table_name: str
    module_name: str
    business_name: str
    options: GenerateOptions = Field(default_factory=GenerateOptions)
    remark: Optional[str] = None


class CodeGeneratorUpdate(BaseModel):
    """更新代码生成器配置，只修改显式传入的字段"""
    name: Optional[str] = None
    connection_id: Optional[int] = None
    table_name: Optional[str] = None
    module_name: Optional[str] = None
    business_name: Optional[str] = None
    options: Optional[GenerateOptions] = None
    remark: Optional[str] = None


class CodeGeneratorColumn(BaseModel):
    """代码生成器列配置"""
    id: Optional[int] = None
    generator_id: Optional[int] = None
    column_name: str
    column_comment: str = ""
    column_type: str
    mapped_type: Optional[str] = "string"
    is_pk: bool = False
    is_increment: bool = False
    is_required: bool = False
    is_insert: bool = True
    is_edit: bool = True
    is_list: bool = True
    is_query: bool = False
    query_type: Optional[QueryType] = QueryType.EQ
    html_type: HtmlType = HtmlType.INPUT
    dict_type: Optional[str] = None
    sort: int = 0

    @model_validator(mode="after")
    def _increment_requires_pk(self):
        if self.is_increment and not self.is_pk:
            raise ValueError(f"自增列必须是主键: {self.column_name}")
        return self


class CodeGeneratorColumnUpdate(BaseModel):
    """操作员手工修改列配置"""
    column_comment: Optional[str] = None
    mapped_type: Optional[str] = None
    is_required: Optional[bool] = None
    is_insert: Optional[bool] = None
    is_edit: Optional[bool] = None
    is_list: Optional[bool] = None
    is_query: Optional[bool] = None
    query_type: Optional[QueryType] = None
    html_type: Optional[HtmlType] = None
    dict_type: Optional[str] = None
    sort: Optional[int] = None


class ColumnImport(BaseModel):
    """从表结构导入的列草稿（尚未关联生成器）"""
    table_name: str
    columns: List[CodeGeneratorColumn] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class GeneratedFile(BaseModel):
    """生成的代码文件"""
    path: str
    content: str


class GeneratedArchive(BaseModel):
    """打包后的代码压缩包"""
    content: bytes
    filename: str = "generated-code.zip"
    content_type: str = "application/zip"


# ============ SQL 执行 ============

class FieldDescriptor(BaseModel):
    """结果集字段"""
    name: str
    type: str


class QueryResult(BaseModel):
    """查询结果"""
    fields: List[FieldDescriptor] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time: float = 0.0  # 毫秒


class AffectedRows(BaseModel):
    """非查询语句的执行结果"""
    affected_rows: int
    execution_time: float = 0.0  # 毫秒
