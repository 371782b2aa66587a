"""
字段类型映射
将数据库原始类型归类为类型族，并给出代码生成使用的默认配置
"""
import re
from typing import Dict, List, Optional

from pydantic import BaseModel

from .dto import CodeGeneratorColumn, ColumnMetadata, HtmlType, QueryType


class TypeFamily:
    """类型族"""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    JSON = "json"
    BINARY = "binary"
    OTHER = "other"


class TypeMapping(BaseModel):
    """类型族对应的生成默认值"""
    family: str
    mapped_type: str
    html_type: HtmlType
    query_type: Optional[QueryType] = None


# 类型族 -> (mapped_type, html_type, query_type)
FAMILY_DEFAULTS: Dict[str, tuple] = {
    TypeFamily.STRING: ("string", HtmlType.INPUT, QueryType.LIKE),
    TypeFamily.INTEGER: ("number", HtmlType.INPUT, QueryType.EQ),
    TypeFamily.BOOLEAN: ("boolean", HtmlType.RADIO, QueryType.EQ),
    TypeFamily.DECIMAL: ("number", HtmlType.INPUT, QueryType.BETWEEN),
    TypeFamily.DATETIME: ("Date", HtmlType.DATETIME, QueryType.BETWEEN),
    TypeFamily.JSON: ("string", HtmlType.TEXTAREA, None),
    TypeFamily.BINARY: ("string", HtmlType.UPLOAD, None),
    TypeFamily.OTHER: ("string", HtmlType.INPUT, QueryType.EQ),
}

# 基础类型名 -> 类型族，各数据库驱动可以在此基础上覆盖
BASE_TYPE_FAMILIES: Dict[str, str] = {
    # 字符串
    "char": TypeFamily.STRING,
    "varchar": TypeFamily.STRING,
    "nchar": TypeFamily.STRING,
    "nvarchar": TypeFamily.STRING,
    "character": TypeFamily.STRING,
    "text": TypeFamily.STRING,
    "tinytext": TypeFamily.STRING,
    "mediumtext": TypeFamily.STRING,
    "longtext": TypeFamily.STRING,
    "ntext": TypeFamily.STRING,
    "citext": TypeFamily.STRING,
    "clob": TypeFamily.STRING,
    "string": TypeFamily.STRING,
    # 整数
    "int": TypeFamily.INTEGER,
    "integer": TypeFamily.INTEGER,
    "bigint": TypeFamily.INTEGER,
    "smallint": TypeFamily.INTEGER,
    "mediumint": TypeFamily.INTEGER,
    "tinyint": TypeFamily.INTEGER,
    "int2": TypeFamily.INTEGER,
    "int4": TypeFamily.INTEGER,
    "int8": TypeFamily.INTEGER,
    "serial": TypeFamily.INTEGER,
    "bigserial": TypeFamily.INTEGER,
    "smallserial": TypeFamily.INTEGER,
    # 布尔
    "bool": TypeFamily.BOOLEAN,
    "boolean": TypeFamily.BOOLEAN,
    "bit": TypeFamily.BOOLEAN,
    # 小数
    "decimal": TypeFamily.DECIMAL,
    "numeric": TypeFamily.DECIMAL,
    "float": TypeFamily.DECIMAL,
    "float4": TypeFamily.DECIMAL,
    "float8": TypeFamily.DECIMAL,
    "double": TypeFamily.DECIMAL,
    "real": TypeFamily.DECIMAL,
    "money": TypeFamily.DECIMAL,
    "smallmoney": TypeFamily.DECIMAL,
    # 日期时间
    "date": TypeFamily.DATETIME,
    "datetime": TypeFamily.DATETIME,
    "datetime2": TypeFamily.DATETIME,
    "smalldatetime": TypeFamily.DATETIME,
    "datetimeoffset": TypeFamily.DATETIME,
    "timestamp": TypeFamily.DATETIME,
    "timestamptz": TypeFamily.DATETIME,
    "time": TypeFamily.DATETIME,
    "timetz": TypeFamily.DATETIME,
    # JSON
    "json": TypeFamily.JSON,
    "jsonb": TypeFamily.JSON,
    # 二进制
    "blob": TypeFamily.BINARY,
    "tinyblob": TypeFamily.BINARY,
    "mediumblob": TypeFamily.BINARY,
    "longblob": TypeFamily.BINARY,
    "bytea": TypeFamily.BINARY,
    "binary": TypeFamily.BINARY,
    "varbinary": TypeFamily.BINARY,
    "image": TypeFamily.BINARY,
}

_BASE_NAME_PATTERN = re.compile(r"[a-z0-9_]+")
_TINYINT_ONE_PATTERN = re.compile(r"^tinyint\s*\(\s*1\s*\)")

# 根据列名推断表单控件（只对字符串类列生效）
HTML_TYPE_BY_NAME = (
    (("content", "description", "remark"), HtmlType.TEXTAREA),
    (("image", "img", "avatar", "picture"), HtmlType.IMAGE),
    (("file",), HtmlType.UPLOAD),
    (("status", "state"), HtmlType.SELECT),
)

# 列名包含这些关键字时默认作为查询条件
QUERY_NAME_KEYWORDS = ("status", "type", "name", "title", "code", "key")


def base_type_name(native_type: str) -> str:
    """
    提取原始类型的基础名称

    Examples:
        >>> base_type_name("VARCHAR(255)")
        'varchar'
        >>> base_type_name("double precision")
        'double'
    """
    match = _BASE_NAME_PATTERN.match((native_type or "").strip().lower())
    return match.group(0) if match else ""


def classify_native_type(native_type: str, overrides: Optional[Dict[str, str]] = None) -> str:
    """
    将原始类型归类为类型族

    Args:
        native_type: 数据库返回的类型文本，如 "varchar(64)"、"tinyint(1)"
        overrides: 驱动提供的基础类型名覆盖表

    Returns:
        类型族，无法识别时返回 other
    """
    normalized = (native_type or "").strip().lower()
    if _TINYINT_ONE_PATTERN.match(normalized):
        return TypeFamily.BOOLEAN

    base = base_type_name(normalized)
    if overrides and base in overrides:
        return overrides[base]
    return BASE_TYPE_FAMILIES.get(base, TypeFamily.OTHER)


def mapping_for_family(family: str) -> TypeMapping:
    """类型族 -> 默认生成配置"""
    mapped_type, html_type, query_type = FAMILY_DEFAULTS.get(family, FAMILY_DEFAULTS[TypeFamily.OTHER])
    return TypeMapping(family=family, mapped_type=mapped_type, html_type=html_type, query_type=query_type)


def map_native_type(dialect: str, native_type: str) -> TypeMapping:
    """
    按数据库类型映射原始字段类型

    纯函数，对任意输入都有结果，无法识别的类型归入 other。

    Args:
        dialect: 数据库类型，如 mysql、postgres
        native_type: 原始字段类型

    Returns:
        TypeMapping
    """
    from .database_drivers import DatabaseDriverFactory

    driver = DatabaseDriverFactory.get_driver(dialect)
    return mapping_for_family(driver.type_family(native_type))


def _name_contains(column_name: str, keywords) -> bool:
    lowered = column_name.lower()
    return any(keyword in lowered for keyword in keywords)


def build_default_column(
    dialect: str,
    metadata: ColumnMetadata,
    sort: int = 0
) -> CodeGeneratorColumn:
    """
    根据数据库列信息生成列配置默认值

    Args:
        dialect: 数据库类型
        metadata: 数据库返回的列信息
        sort: 排序号（字段顺序）

    Returns:
        未关联生成器的列配置草稿
    """
    mapping = map_native_type(dialect, metadata.native_type)
    is_pk = metadata.is_primary
    is_increment = is_pk and metadata.is_auto_increment

    html_type = mapping.html_type
    if mapping.family in (TypeFamily.STRING, TypeFamily.OTHER, TypeFamily.INTEGER):
        for keywords, candidate in HTML_TYPE_BY_NAME:
            if _name_contains(metadata.name, keywords):
                html_type = candidate
                break

    searchable = mapping.query_type is not None
    is_query = (
        not is_pk
        and searchable
        and _name_contains(metadata.name, QUERY_NAME_KEYWORDS)
    )

    return CodeGeneratorColumn(
        column_name=metadata.name,
        column_comment=metadata.comment or "",
        column_type=metadata.native_type,
        mapped_type=mapping.mapped_type,
        is_pk=is_pk,
        is_increment=is_increment,
        is_required=not metadata.nullable and not is_increment,
        is_insert=not is_pk,
        is_edit=not is_pk,
        is_list=True,
        is_query=is_query,
        query_type=mapping.query_type,
        html_type=html_type,
        sort=sort,
    )


def build_default_columns(dialect: str, columns: List[ColumnMetadata]) -> List[CodeGeneratorColumn]:
    """按字段顺序生成列配置草稿，序号作为初始 sort"""
    return [build_default_column(dialect, metadata, sort=index) for index, metadata in enumerate(columns)]
