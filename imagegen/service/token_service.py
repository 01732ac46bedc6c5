"""
登录 token 的签发、校验和白名单管理

token 结构：Fernet 加密的 payload + "." + HMAC-SHA256 签名
白名单：redis 集合 tokens:{user_id}，退出登录即从集合中移除
"""
import base64
import hashlib
import hmac
import json
import time
from typing import Tuple

from cryptography.fernet import Fernet, InvalidToken

from imagegen.common.config import config
from imagegen.common.exception.exception import HttpBusinessException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.core.logger_util import logger
from imagegen.core.redis_client import redis_client

MILLIS_PER_DAY = 24 * 3600 * 1000


class TokenService:
    USER_TOKENS_PREFIX = "tokens:"

    def __init__(self, secret_key: str):
        self.secret_key = secret_key
        key_bytes = hashlib.sha256(secret_key.encode("utf-8")).digest()
        self.fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def _sign(self, payload: str) -> str:
        return hmac.new(self.secret_key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate_token(self, user_id: int, expire_days: int = None) -> Tuple[str, int]:
        """
        签发 token
        :return: (token, 过期时间戳毫秒)
        """
        if expire_days is None:
            expire_days = config.auth.token_expire_days
        now_ms = int(time.time() * 1000)
        expire_time = now_ms + expire_days * MILLIS_PER_DAY
        payload_json = json.dumps(
            {"user_id": user_id, "expire_time": expire_time, "timestamp": now_ms},
            separators=(",", ":"),
        )
        payload = self.fernet.encrypt(payload_json.encode("utf-8")).decode("utf-8")
        return f"{payload}.{self._sign(payload)}", expire_time

    async def parse_token(self, token: str, check_whitelist: bool = True) -> Tuple[int, int]:
        """
        解析并校验 token
        :return: (user_id, expire_time)
        :raises HttpBusinessException: TOKEN_INVALID / TOKEN_EXPIRED
        """
        payload, _, signature = token.rpartition(".")
        if not payload or not hmac.compare_digest(signature, self._sign(payload)):
            logger.warning("token 签名校验失败")
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_INVALID)

        try:
            payload_data = json.loads(self.fernet.decrypt(payload.encode("utf-8")))
        except (InvalidToken, ValueError):
            logger.warning("token 解析失败")
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_INVALID)

        user_id = payload_data.get("user_id")
        expire_time = payload_data.get("expire_time")
        if user_id is None or expire_time is None:
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_INVALID)

        if int(time.time() * 1000) > expire_time:
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_EXPIRED)

        if check_whitelist and not await redis_client.is_member(f"{self.USER_TOKENS_PREFIX}{user_id}", token):
            logger.warning(f"token 不在用户 {user_id} 的有效 token 集合中")
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_EXPIRED)

        return user_id, expire_time

    # ==================== 白名单 ====================

    async def add_token_to_user(self, user_id: int, token: str, expire_time: int):
        """
        加入白名单，超过单用户最大登录数时挤掉一个旧 token
        """
        ttl_seconds = max(int((expire_time - time.time() * 1000) / 1000), 1)
        await redis_client.add_to_capped_set(
            f"{self.USER_TOKENS_PREFIX}{user_id}",
            token,
            max_size=config.auth.max_tokens_per_user,
            expire=ttl_seconds,
        )

    async def remove_token_from_user(self, user_id: int, token: str):
        await redis_client.remove_from_set(f"{self.USER_TOKENS_PREFIX}{user_id}", token)
        logger.info(f"token 已从用户 {user_id} 的集合中移除")


token_service = TokenService(config.secret_key)
