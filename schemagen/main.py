"""
代码生成工作台 - 主入口
加载配置、初始化元数据库并构建工作台服务
"""
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from dotenv import load_dotenv

from .database import Database, init_database
from .services.database_drivers import DatabaseDriverFactory
from .services.workbench_service import WorkbenchService
from .utils.logger import setup_logger

# 加载环境变量
load_dotenv()

# 初始化日志
logger = setup_logger()


def bootstrap(database: Optional[Database] = None) -> WorkbenchService:
    """
    初始化元数据库并创建工作台服务

    Args:
        database: 元数据库，默认按 CONFIG_DB_PATH 创建

    Returns:
        WorkbenchService 实例
    """
    process_id = os.getpid()
    logger.info(f"进程 {process_id} 正在启动...")

    try:
        database = init_database(database)
        logger.info(f"进程 {process_id} 元数据库初始化成功")
    except Exception as e:
        logger.error(f"进程 {process_id} 元数据库初始化失败: {e}", exc_info=True)
        raise

    service = WorkbenchService(database=database)
    logger.info(f"支持的数据库类型: {', '.join(DatabaseDriverFactory.get_supported_types())}")
    return service


@asynccontextmanager
async def lifespan(database: Optional[Database] = None) -> AsyncIterator[WorkbenchService]:
    """
    工作台服务生命周期管理

    外层传输层（HTTP、CLI 等）在启动时进入、关闭时退出，退出时释放所有连接池。
    """
    service = bootstrap(database)
    try:
        yield service
    finally:
        logger.info("正在关闭...")
        await service.close()


def main():
    """初始化元数据库（命令行入口）"""
    bootstrap()
    logger.info("初始化完成")


if __name__ == "__main__":
    main()
