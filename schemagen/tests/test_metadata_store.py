"""
元数据存储测试
"""
import pytest

from schemagen.services.dto import (
    CodeGeneratorColumn,
    CodeGeneratorColumnUpdate,
    CodeGeneratorConfig,
    CodeGeneratorUpdate,
    GenerateOptions,
)
from schemagen.services.errors import (
    ConnectionNotFoundError,
    GeneratorNotFoundError,
    GeneratorValidationError,
)


def _generator(connection_id, name="order"):
    return CodeGeneratorConfig(
        name=name,
        connection_id=connection_id,
        table_name="biz_order",
        module_name="sales",
        business_name="order",
    )


class TestGenerators:
    """测试代码生成器配置"""

    async def test_create_and_get(self, workbench, sqlite_connection):
        created = await workbench.create_generator(_generator(sqlite_connection.id))
        assert created.id is not None

        loaded = await workbench.get_generator(created.id)
        assert loaded == created
        assert loaded.options == GenerateOptions()

    async def test_duplicate_name(self, workbench, sqlite_connection):
        await workbench.create_generator(_generator(sqlite_connection.id))
        with pytest.raises(GeneratorValidationError):
            await workbench.create_generator(_generator(sqlite_connection.id))

    async def test_unknown_connection(self, workbench):
        with pytest.raises(ConnectionNotFoundError):
            await workbench.create_generator(_generator(777))

    async def test_update(self, workbench, sqlite_connection):
        created = await workbench.create_generator(_generator(sqlite_connection.id))
        await workbench.create_generator(_generator(sqlite_connection.id, name="other"))

        updated = await workbench.update_generator(created.id, CodeGeneratorUpdate(
            business_name="sales_order",
            options=GenerateOptions(generate_test=True),
        ))
        assert updated.business_name == "sales_order"
        assert updated.options.generate_test is True
        assert updated.name == "order"

        with pytest.raises(GeneratorValidationError):
            await workbench.update_generator(created.id, CodeGeneratorUpdate(name="other"))

    async def test_list_and_delete(self, workbench, sqlite_connection, user_generator):
        listed = await workbench.list_generators(sqlite_connection.id)
        assert [config.id for config in listed] == [user_generator.id]

        await workbench.delete_generator(user_generator.id)
        with pytest.raises(GeneratorNotFoundError):
            await workbench.get_generator(user_generator.id)
        with pytest.raises(GeneratorNotFoundError):
            await workbench.list_columns(user_generator.id)
        assert await workbench.list_generators() == []


class TestColumns:
    """测试列配置"""

    async def test_attach_replaces_columns(self, workbench, user_generator):
        replaced = await workbench.attach_columns(user_generator.id, [
            CodeGeneratorColumn(column_name="b", column_type="text", sort=1),
            CodeGeneratorColumn(column_name="a", column_type="text", sort=1),
        ])
        assert [column.column_name for column in replaced] == ["a", "b"]
        assert all(column.generator_id == user_generator.id for column in replaced)
        assert [c.column_name for c in await workbench.list_columns(user_generator.id)] == ["a", "b"]

    async def test_attach_rejects_duplicate_names(self, workbench, user_generator):
        with pytest.raises(GeneratorValidationError):
            await workbench.attach_columns(user_generator.id, [
                CodeGeneratorColumn(column_name="a", column_type="text"),
                CodeGeneratorColumn(column_name="a", column_type="int"),
            ])

    async def test_update_column(self, workbench, user_generator):
        columns = await workbench.list_columns(user_generator.id)
        remark = next(column for column in columns if column.column_name == "remark")

        updated = await workbench.update_column(remark.id, CodeGeneratorColumnUpdate(
            column_comment="备注", is_query=True, dict_type="sys_remark", sort=99,
        ))
        assert updated.column_comment == "备注"
        assert updated.is_query is True
        assert updated.dict_type == "sys_remark"
        assert (await workbench.list_columns(user_generator.id))[-1].id == remark.id

    async def test_update_unknown_column(self, workbench, user_generator):
        with pytest.raises(GeneratorValidationError):
            await workbench.update_column(9999, CodeGeneratorColumnUpdate(column_comment="x"))

    def test_increment_requires_primary_key(self):
        with pytest.raises(ValueError):
            CodeGeneratorColumn(column_name="seq", column_type="int", is_increment=True)
