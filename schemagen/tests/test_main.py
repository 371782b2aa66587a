"""
启动入口测试
"""
from schemagen.database import Database
from schemagen.main import bootstrap, lifespan
from schemagen.services.workbench_service import WorkbenchService


class TestMain:
    """测试启动与关闭"""

    def test_bootstrap_creates_tables(self, tmp_path):
        db = Database(f"sqlite:///{tmp_path / 'boot.db'}")
        service = bootstrap(db)
        assert isinstance(service, WorkbenchService)
        assert service.store.list_generators() == []
        db.dispose()

    async def test_lifespan_releases_pools(self, tmp_path, target_path):
        from schemagen.services.dto import DatabaseConnectionCreate

        db = Database(f"sqlite:///{tmp_path / 'life.db'}")
        async with lifespan(db) as service:
            view = await service.create_connection(DatabaseConnectionCreate(
                name="local", type="sqlite", filename=str(target_path),
            ))
            await service.list_tables(view.id)
            assert service.registry.has_pool(view.id)
        assert not service.registry.has_pool(view.id)
        db.dispose()
