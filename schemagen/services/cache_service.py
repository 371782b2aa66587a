"""
缓存服务
使用内存缓存存储代码渲染结果，相同的配置和列不重复渲染
"""
import hashlib
import json
import os
import time
from typing import Any, Optional, Dict
from collections import OrderedDict
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CacheService:
    """简单的内存缓存服务（LRU策略）"""

    def __init__(self, max_size: int = 64, default_ttl: Optional[int] = None):
        """
        初始化缓存服务

        Args:
            max_size: 最大缓存条目数
            default_ttl: 默认过期时间（秒），None 表示不过期
        """
        self.cache: OrderedDict[str, Dict[str, Any]] = OrderedDict()
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0

        logger.info(f"缓存服务初始化: max_size={max_size}, default_ttl={default_ttl}")

    @staticmethod
    def make_key(prefix: str, data: Any) -> str:
        """
        生成缓存键

        Args:
            prefix: 键前缀
            data: 参与计算的数据（会被规范化序列化）

        Returns:
            缓存键
        """
        data_str = json.dumps(data, sort_keys=True, ensure_ascii=False, default=str)
        hash_str = hashlib.sha256(data_str.encode('utf-8')).hexdigest()
        return f"{prefix}:{hash_str}"

    def get(self, key: str) -> Optional[Any]:
        """
        获取缓存值

        Returns:
            缓存的值，如果不存在或已过期则返回None
        """
        entry = self.cache.get(key)
        if entry is None:
            self.misses += 1
            logger.debug(f"缓存未命中: {key}")
            return None

        if entry['expires_at'] is not None and time.time() > entry['expires_at']:
            del self.cache[key]
            self.misses += 1
            logger.debug(f"缓存已过期: {key}")
            return None

        # 移动到末尾（LRU）
        self.cache.move_to_end(key)
        self.hits += 1
        logger.debug(f"缓存命中: {key}")
        return entry['value']

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        设置缓存值

        Args:
            key: 缓存键
            value: 要缓存的值
            ttl: 过期时间（秒），如果为None则使用默认值
        """
        if self.max_size <= 0:
            return
        if ttl is None:
            ttl = self.default_ttl

        # 如果缓存已满，删除最旧的条目
        if len(self.cache) >= self.max_size and key not in self.cache:
            oldest_key = next(iter(self.cache))
            del self.cache[oldest_key]
            logger.debug(f"缓存已满，删除最旧条目: {oldest_key}")

        self.cache[key] = {
            'value': value,
            'expires_at': time.time() + ttl if ttl else None,
        }
        self.cache.move_to_end(key)

    def clear(self) -> None:
        """清空所有缓存"""
        count = len(self.cache)
        self.cache.clear()
        logger.info(f"缓存已清空: {count} 条")

    def get_stats(self) -> Dict[str, Any]:
        """
        获取缓存统计信息

        Returns:
            统计信息字典
        """
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'size': len(self.cache),
            'max_size': self.max_size,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': f"{hit_rate:.2f}%",
            'total_requests': total_requests
        }


# 全局缓存服务实例
_render_cache = None


def get_render_cache() -> CacheService:
    """
    获取全局渲染缓存实例

    Returns:
        CacheService实例
    """
    global _render_cache

    if _render_cache is None:
        _render_cache = CacheService(max_size=int(os.getenv("RENDER_CACHE_SIZE", "64")))

    return _render_cache
