"""
日期时间辅助工具
元数据库中的时间戳按 UTC 保存（不带时区），对外统一输出带 Z 后缀的 ISO 8601 字符串
"""
from datetime import datetime, timezone
from typing import Optional


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """
    将 datetime 对象转换为 ISO 8601 格式字符串

    Examples:
        >>> to_iso_string(datetime(2024, 11, 3, 6, 30, 0, 123456))
        '2024-11-03T06:30:00Z'
    """
    if dt is None:
        return None

    # 不带时区的时间视为 UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace('+00:00', 'Z')
