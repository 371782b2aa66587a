"""
测试公共夹具
元数据库和目标数据库都使用临时 SQLite 文件
"""
import sqlite3

import pytest
from cryptography.fernet import Fernet

from schemagen.database import Database, init_database
from schemagen.services.cache_service import CacheService
from schemagen.services.dto import (
    CodeGeneratorConfig,
    DatabaseConnectionCreate,
    DatabaseType,
)
from schemagen.services.encryption_service import EncryptionService
from schemagen.services.workbench_service import WorkbenchService

TARGET_SCHEMA = """
CREATE TABLE sys_user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_name VARCHAR(64) NOT NULL UNIQUE,
    nick_name VARCHAR(64),
    status INTEGER NOT NULL DEFAULT 0,
    remark TEXT,
    created_at DATETIME
);
CREATE TABLE sys_dept (
    dept_id INTEGER PRIMARY KEY,
    dept_name VARCHAR(50) NOT NULL
);
INSERT INTO sys_user (user_name, nick_name, status, remark) VALUES ('admin', '管理员', 1, NULL);
INSERT INTO sys_user (user_name, nick_name, status, remark) VALUES ('alice', 'Alice', 1, 'test');
INSERT INTO sys_user (user_name, nick_name, status, remark) VALUES ('bob', 'Bob', 0, NULL);
"""


@pytest.fixture
def metadata_db(tmp_path):
    """临时元数据库"""
    db = Database(f"sqlite:///{tmp_path / 'config.db'}")
    init_database(db)
    yield db
    db.dispose()


@pytest.fixture
def encryption():
    return EncryptionService(Fernet.generate_key())


@pytest.fixture
def target_path(tmp_path):
    """带样例数据的目标 SQLite 数据库"""
    path = tmp_path / "target.db"
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(TARGET_SCHEMA)
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
async def workbench(metadata_db, encryption):
    service = WorkbenchService(
        database=metadata_db,
        encryption_service=encryption,
        render_cache=CacheService(max_size=16),
    )
    yield service
    await service.close()


@pytest.fixture
async def sqlite_connection(workbench, target_path):
    """已登记的 SQLite 目标连接"""
    return await workbench.create_connection(DatabaseConnectionCreate(
        name="local",
        type=DatabaseType.SQLITE,
        filename=str(target_path),
    ))


@pytest.fixture
async def user_generator(workbench, sqlite_connection):
    """sys_user 表的代码生成器，列配置已导入"""
    config = await workbench.create_generator(CodeGeneratorConfig(
        name="user",
        connection_id=sqlite_connection.id,
        table_name="sys_user",
        module_name="system",
        business_name="user",
        remark="用户管理",
    ))
    imported = await workbench.import_columns(sqlite_connection.id, "sys_user")
    await workbench.attach_columns(config.id, imported.columns)
    return config
