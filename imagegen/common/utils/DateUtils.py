"""
时间工具
数据库统一存储业务时区（config.timezone）下的无时区时间，
Tortoise 读出的时间可能带时区，比较前统一转换成业务时区的无时区时间
"""
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from imagegen.common.config import config

_zone = ZoneInfo(config.timezone)


def now() -> datetime:
    return datetime.now(_zone).replace(tzinfo=None)


def to_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(_zone).replace(tzinfo=None)
