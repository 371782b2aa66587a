"""
字段类型映射测试
"""
import pytest

from schemagen.services.dto import ColumnMetadata, HtmlType, QueryType
from schemagen.services.errors import DatabaseConnectionError
from schemagen.services.type_mapping import (
    TypeFamily,
    base_type_name,
    build_default_column,
    build_default_columns,
    classify_native_type,
    map_native_type,
)


class TestClassifyNativeType:
    """测试原始类型归类"""

    @pytest.mark.parametrize("native_type, family", [
        ("varchar(255)", TypeFamily.STRING),
        ("INT(11) UNSIGNED", TypeFamily.INTEGER),
        ("tinyint(1)", TypeFamily.BOOLEAN),
        ("tinyint(4)", TypeFamily.INTEGER),
        ("decimal(10,2)", TypeFamily.DECIMAL),
        ("double precision", TypeFamily.DECIMAL),
        ("timestamp with time zone", TypeFamily.DATETIME),
        ("jsonb", TypeFamily.JSON),
        ("longblob", TypeFamily.BINARY),
        ("geometry", TypeFamily.OTHER),
        ("", TypeFamily.OTHER),
    ])
    def test_families(self, native_type, family):
        assert classify_native_type(native_type) == family

    def test_overrides_take_precedence(self):
        assert classify_native_type("bit(8)") == TypeFamily.BOOLEAN
        assert classify_native_type("bit(8)", {"bit": TypeFamily.OTHER}) == TypeFamily.OTHER

    def test_base_type_name(self):
        assert base_type_name("VARCHAR(255)") == "varchar"
        assert base_type_name("  BigInt ") == "bigint"
        assert base_type_name("(x)") == ""


class TestMapNativeType:
    """测试按数据库类型映射"""

    @pytest.mark.parametrize("dialect, native_type, mapped_type, html_type, query_type", [
        ("mysql", "varchar(64)", "string", HtmlType.INPUT, QueryType.LIKE),
        ("mysql", "tinyint(1)", "boolean", HtmlType.RADIO, QueryType.EQ),
        ("mysql", "year", "number", HtmlType.INPUT, QueryType.EQ),
        ("mariadb", "datetime", "Date", HtmlType.DATETIME, QueryType.BETWEEN),
        ("postgres", "numeric(12,4)", "number", HtmlType.INPUT, QueryType.BETWEEN),
        ("postgres", "uuid", "string", HtmlType.INPUT, QueryType.EQ),
        ("postgres", "json", "string", HtmlType.TEXTAREA, None),
        ("mssql", "datetime2(7)", "Date", HtmlType.DATETIME, QueryType.BETWEEN),
        ("mssql", "varbinary(max)", "string", HtmlType.UPLOAD, None),
        ("sqlite", "INTEGER", "number", HtmlType.INPUT, QueryType.EQ),
    ])
    def test_mapping(self, dialect, native_type, mapped_type, html_type, query_type):
        mapping = map_native_type(dialect, native_type)
        assert mapping.mapped_type == mapped_type
        assert mapping.html_type == html_type
        assert mapping.query_type == query_type

    def test_unknown_type_falls_back_to_other(self):
        mapping = map_native_type("mysql", "point")
        assert mapping.family == TypeFamily.OTHER
        assert mapping.mapped_type == "string"

    def test_unsupported_dialect(self):
        with pytest.raises(DatabaseConnectionError):
            map_native_type("oracle", "varchar2(10)")


class TestBuildDefaultColumn:
    """测试列配置默认值"""

    def test_auto_increment_primary_key(self):
        column = build_default_column("mysql", ColumnMetadata(
            name="id", native_type="bigint", nullable=False, is_primary=True, is_auto_increment=True
        ))
        assert column.is_pk and column.is_increment
        assert not column.is_required
        assert not column.is_insert and not column.is_edit
        assert column.is_list
        assert not column.is_query

    def test_auto_increment_without_primary_key_is_ignored(self):
        column = build_default_column("mysql", ColumnMetadata(
            name="seq", native_type="int", is_auto_increment=True
        ))
        assert not column.is_increment

    def test_required_string_column(self):
        column = build_default_column("mysql", ColumnMetadata(
            name="user_name", native_type="varchar(64)", nullable=False, comment="用户名"
        ), sort=3)
        assert column.is_required
        assert column.is_query
        assert column.query_type == QueryType.LIKE
        assert column.column_comment == "用户名"
        assert column.sort == 3

    @pytest.mark.parametrize("name, native_type, html_type", [
        ("remark", "varchar(500)", HtmlType.TEXTAREA),
        ("avatar", "varchar(255)", HtmlType.IMAGE),
        ("attachment_file", "varchar(255)", HtmlType.UPLOAD),
        ("status", "char(1)", HtmlType.SELECT),
        ("status", "int", HtmlType.SELECT),
        ("created_at", "datetime", HtmlType.DATETIME),
        ("is_deleted", "tinyint(1)", HtmlType.RADIO),
    ])
    def test_html_type_from_name(self, name, native_type, html_type):
        column = build_default_column("mysql", ColumnMetadata(name=name, native_type=native_type))
        assert column.html_type == html_type

    def test_columns_keep_field_order(self):
        columns = build_default_columns("postgres", [
            ColumnMetadata(name="id", native_type="integer", is_primary=True),
            ColumnMetadata(name="title", native_type="text"),
            ColumnMetadata(name="body", native_type="text"),
        ])
        assert [column.column_name for column in columns] == ["id", "title", "body"]
        assert [column.sort for column in columns] == [0, 1, 2]
