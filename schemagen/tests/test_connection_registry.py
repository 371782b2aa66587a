"""
数据库连接注册表测试
"""
import pytest

from schemagen.services.connection_registry import validate_connection_fields
from schemagen.services.dto import (
    ConnectionStatus,
    DatabaseConnectionCreate,
    DatabaseConnectionUpdate,
    DatabaseType,
)
from schemagen.services.errors import (
    ConnectionNotFoundError,
    ConnectionValidationError,
    DatabaseConnectionError,
    SystemConnectionError,
)
from schemagen.models import DatabaseConnection


class TestValidateConnectionFields:
    """测试连接字段校验"""

    def test_sqlite_requires_filename(self):
        with pytest.raises(ConnectionValidationError):
            validate_connection_fields({"type": "sqlite"})

    def test_sqlite_rejects_network_fields(self):
        with pytest.raises(ConnectionValidationError) as exc_info:
            validate_connection_fields({"type": "sqlite", "filename": "a.db", "host": "localhost"})
        assert "host" in str(exc_info.value)

    def test_network_database_requires_host_and_database(self):
        with pytest.raises(ConnectionValidationError):
            validate_connection_fields({"type": "mysql", "database": "app"})
        with pytest.raises(ConnectionValidationError):
            validate_connection_fields({"type": "postgres", "host": "localhost"})

    def test_network_database_rejects_filename(self):
        with pytest.raises(ConnectionValidationError):
            validate_connection_fields({"type": "mssql", "host": "h", "database": "d", "filename": "a.db"})

    def test_unsupported_type(self):
        with pytest.raises(ConnectionValidationError):
            validate_connection_fields({"type": "oracle", "host": "h", "database": "d"})

    def test_valid_combinations(self):
        validate_connection_fields({"type": DatabaseType.SQLITE, "filename": "a.db"})
        validate_connection_fields({"type": "mariadb", "host": "h", "database": "d", "port": 3307})


class TestConnectionRegistry:
    """测试连接增删改查"""

    async def test_create_defaults_port_and_encrypts_password(self, workbench, metadata_db, encryption):
        view = await workbench.create_connection(DatabaseConnectionCreate(
            name="mysql-main", type=DatabaseType.MYSQL, host="db.local",
            username="root", password="secret", database="app",
        ))
        assert view.port == 3306
        assert view.has_password is True
        assert "password" not in view.model_dump()

        with metadata_db.get_session() as session:
            record = session.get(DatabaseConnection, view.id)
            assert record.encrypted_password != "secret"
            assert encryption.decrypt_password(record.encrypted_password) == "secret"

    async def test_list_filters_and_pages(self, workbench, tmp_path):
        for index in range(3):
            await workbench.create_connection(DatabaseConnectionCreate(
                name=f"local-{index}", type="sqlite", filename=str(tmp_path / f"{index}.db"),
            ))
        await workbench.create_connection(DatabaseConnectionCreate(
            name="pg", type="postgres", host="h", database="d",
        ))

        page = await workbench.list_connections(db_type="sqlite", page=1, page_size=2)
        assert page.total == 3
        assert len(page.items) == 2

        named = await workbench.list_connections(name="pg")
        assert [item.name for item in named.items] == ["pg"]

    async def test_get_unknown(self, workbench):
        with pytest.raises(ConnectionNotFoundError):
            await workbench.get_connection(999)

    async def test_update_revalidates(self, workbench, sqlite_connection):
        with pytest.raises(ConnectionValidationError):
            await workbench.update_connection(
                sqlite_connection.id, DatabaseConnectionUpdate(host="localhost")
            )

        view = await workbench.update_connection(
            sqlite_connection.id, DatabaseConnectionUpdate(name="renamed")
        )
        assert view.name == "renamed"

    async def test_update_params_disposes_pool(self, workbench, sqlite_connection, tmp_path):
        await workbench.list_tables(sqlite_connection.id)
        assert workbench.registry.has_pool(sqlite_connection.id)

        # 只改名称不影响连接池
        await workbench.update_connection(sqlite_connection.id, DatabaseConnectionUpdate(name="x"))
        assert workbench.registry.has_pool(sqlite_connection.id)

        await workbench.update_connection(
            sqlite_connection.id, DatabaseConnectionUpdate(filename=str(tmp_path / "other.db"))
        )
        assert not workbench.registry.has_pool(sqlite_connection.id)

    async def test_disabled_connection_cannot_be_used(self, workbench, sqlite_connection):
        await workbench.list_tables(sqlite_connection.id)
        view = await workbench.set_connection_status(sqlite_connection.id, ConnectionStatus.DISABLED)
        assert view.status == ConnectionStatus.DISABLED
        assert not workbench.registry.has_pool(sqlite_connection.id)

        with pytest.raises(DatabaseConnectionError):
            await workbench.list_tables(sqlite_connection.id)

        await workbench.set_connection_status(sqlite_connection.id, ConnectionStatus.ENABLED)
        listing = await workbench.list_tables(sqlite_connection.id)
        assert listing.tables

    async def test_system_connection_is_protected(self, workbench, target_path):
        view = await workbench.create_connection(DatabaseConnectionCreate(
            name="system", type="sqlite", filename=str(target_path), is_system=True,
        ))

        with pytest.raises(SystemConnectionError):
            await workbench.delete_connection(view.id)
        with pytest.raises(SystemConnectionError):
            await workbench.update_connection(view.id, DatabaseConnectionUpdate(filename="other.db"))
        with pytest.raises(SystemConnectionError):
            await workbench.update_connection(
                view.id, DatabaseConnectionUpdate(type="mysql", host="h", database="d", filename=None)
            )

        # 非受保护字段可以修改
        renamed = await workbench.update_connection(view.id, DatabaseConnectionUpdate(name="system-db"))
        assert renamed.name == "system-db"
        assert (await workbench.get_connection(view.id)).is_system is True

    async def test_delete_connection(self, workbench, sqlite_connection):
        await workbench.list_tables(sqlite_connection.id)
        await workbench.delete_connection(sqlite_connection.id)
        assert not workbench.registry.has_pool(sqlite_connection.id)
        with pytest.raises(ConnectionNotFoundError):
            await workbench.get_connection(sqlite_connection.id)

    async def test_delete_connection_in_use(self, workbench, user_generator):
        with pytest.raises(ConnectionValidationError):
            await workbench.delete_connection(user_generator.connection_id)

    async def test_pool_status(self, workbench, sqlite_connection):
        assert workbench.registry.pool_status(sqlite_connection.id) == {"status": "not_created"}
        await workbench.execute_sql(sqlite_connection.id, "SELECT 1")
        status = workbench.registry.pool_status(sqlite_connection.id)
        assert status["checked_out"] == 0

    async def test_close_releases_all_pools(self, workbench, sqlite_connection):
        await workbench.list_tables(sqlite_connection.id)
        await workbench.close()
        assert not workbench.registry.has_pool(sqlite_connection.id)


class TestConnectionTest:
    """测试连接测试"""

    async def test_valid_sqlite(self, workbench, target_path):
        result = await workbench.test_connection(DatabaseConnectionCreate(
            name="scratch", type="sqlite", filename=str(target_path),
        ))
        assert result.ok is True

    async def test_invalid_fields_do_not_raise(self, workbench):
        result = await workbench.test_connection(DatabaseConnectionCreate(name="scratch", type="sqlite"))
        assert result.ok is False
        assert "filename" in result.message
