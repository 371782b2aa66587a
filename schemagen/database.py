"""
元数据库初始化和会话管理
保存数据库连接、代码生成器配置及列配置
"""
import os
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator

from .models.base import Base
from .utils.logger import get_logger

logger = get_logger(__name__)


class Database:
    """元数据库管理类"""

    def __init__(self, db_url: str = None):
        """
        初始化数据库连接

        Args:
            db_url: 数据库URL，如果为None则从环境变量读取
        """
        if db_url is None:
            project_root = Path(__file__).resolve().parent.parent
            default_db_path = project_root / "data" / "config.db"

            db_path = os.getenv("CONFIG_DB_PATH", str(default_db_path))
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
            db_url = f"sqlite:///{db_path}"

        pool_config = {
            "poolclass": QueuePool,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_timeout": 30,
            "pool_recycle": 3600,  # 1小时后回收连接，避免连接过期
            "pool_pre_ping": True,
            "echo": False,
        }

        if db_url.startswith("sqlite"):
            pool_config["connect_args"] = {"check_same_thread": False}
            if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
                # 内存库只能共享同一个连接
                pool_config = {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }

        self.engine = create_engine(db_url, **pool_config)

        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False  # 提交后不过期对象，减少查询
        )

    def create_tables(self):
        """创建所有表"""
        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        """释放连接池"""
        self.engine.dispose()

    @contextmanager
    def get_session(self) -> Generator[SQLAlchemySession, None, None]:
        """
        获取数据库会话的上下文管理器

        会话内的所有修改在退出时一次性提交，出现异常时整体回滚。

        Yields:
            SQLAlchemy会话对象
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# 全局数据库实例
_db_instance = None


def get_database() -> Database:
    """获取全局数据库实例"""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance


def init_database(db: Database = None) -> Database:
    """初始化数据库（创建所有表）"""
    db = db or get_database()
    db.create_tables()
    logger.info("元数据库初始化完成")
    return db
