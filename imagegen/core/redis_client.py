"""
Redis 访问封装

只承担会话相关的缓存（登录用户信息、token 白名单）和防重复提交的短锁，
账本数据的一致性不依赖 redis
"""
import json
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Optional, Union

import redis.asyncio as redis
from pydantic_core import to_json
from redis.exceptions import ConnectionError, LockError, TimeoutError

from imagegen.common.config import RedisConfig, config
from imagegen.common.exception.exception import StateConflictException
from imagegen.core.logger_util import logger

Expiry = Union[int, timedelta]


class RedisClient:
    LOCK_PREFIX = "lock:"

    def __init__(self, redis_config: RedisConfig):
        self.pool = redis.ConnectionPool(
            host=redis_config.host,
            port=redis_config.port,
            db=redis_config.db,
            password=redis_config.password or None,
            decode_responses=True,
            max_connections=redis_config.max_connections,
        )
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> Optional[redis.Redis]:
        client = redis.Redis(connection_pool=self.pool)
        try:
            await client.ping()
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"❌ Redis 连接失败: {e}")
            return None
        self.client = client
        logger.info("✅ Redis 连接成功")
        return client

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("🔒 Redis 连接已关闭")

    # ==================== JSON 缓存 ====================

    async def set(self, key: str, value: Any, expire: Optional[Expiry] = None):
        """
        写入缓存，dict / list / pydantic 对象序列化为 JSON（Decimal、datetime 按字符串保存）
        """
        if not isinstance(value, (str, bytes, int, float)):
            value = to_json(value)
        return await self.client.set(key, value, ex=expire)

    async def get(self, key: str) -> Any:
        data = await self.client.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            return data

    async def delete(self, key: str):
        return await self.client.delete(key)

    # ==================== 集合 ====================

    async def add_to_capped_set(self, key: str, member: str, max_size: int, expire: Expiry):
        """
        向集合加入成员；集合已满时先随机淘汰一个旧成员，并刷新整个集合的过期时间
        :param max_size: <= 0 表示不限制
        """
        async with self.client.pipeline(transaction=True) as pipe:
            if max_size > 0 and await self.client.scard(key) >= max_size:
                evicted = await self.client.spop(key)
                logger.info(f"集合 {key} 已达上限 {max_size}，淘汰成员 {evicted}")
            pipe.sadd(key, member)
            pipe.expire(key, expire)
            await pipe.execute()

    async def remove_from_set(self, key: str, member: str) -> int:
        return await self.client.srem(key, member)

    async def is_member(self, key: str, member: str) -> bool:
        return bool(await self.client.sismember(key, member))

    # ==================== 锁 ====================

    @asynccontextmanager
    async def lock(self, key: str, expire: int = 10, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """
        短时互斥锁，用于拦截重复提交
        在 timeout 秒内拿不到锁视为重复请求，抛出 StateConflictException
        """
        lock = self.client.lock(f"{self.LOCK_PREFIX}{key}", timeout=expire, blocking_timeout=timeout)
        if not await lock.acquire():
            logger.warning(f"⚠️ 获取锁失败: {key}")
            raise StateConflictException("请求处理中，请勿重复提交")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # 业务执行超过 expire，锁已自动过期
                logger.warning(f"⚠️ 释放锁失败: {key}, {e}")


redis_client = RedisClient(config.redis)
