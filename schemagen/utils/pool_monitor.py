"""
数据库连接池监控工具
"""
from typing import Dict, Any

from sqlalchemy.ext.asyncio import AsyncEngine


def get_pool_status(engine: AsyncEngine) -> Dict[str, Any]:
    """
    获取目标数据库连接池状态

    Args:
        engine: 连接注册表维护的异步引擎

    Returns:
        包含连接池统计信息的字典
    """
    pool = engine.pool
    # NullPool / StaticPool 不提供计数
    if not hasattr(pool, "checkedout"):
        return {"pool_class": type(pool).__name__, "status": "unpooled"}

    checked_out = pool.checkedout()
    return {
        "pool_class": type(pool).__name__,
        "pool_size": pool.size(),  # 连接池大小
        "checked_in": pool.checkedin(),  # 可用连接数
        "checked_out": checked_out,  # 正在使用的连接数
        "overflow": pool.overflow(),  # 溢出连接数
        "status": "healthy" if checked_out < pool.size() else "busy"
    }
