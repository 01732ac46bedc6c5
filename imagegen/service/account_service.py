from datetime import timedelta

from tortoise.transactions import atomic

from imagegen.common.config import config
from imagegen.common.constants import RoleEnum, StateEnum
from imagegen.common.exception.exception import HttpBusinessException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.middleware.RequestContextMiddleware import get_ctx
from imagegen.common.models import User
from imagegen.common.schema import LoginRes, LoginUserInfo
from imagegen.common.utils import DateUtils, PasswordUtils
from imagegen.core.logger_util import logger
from imagegen.core.redis_client import redis_client
from imagegen.service.entitlement_service import entitlement_service
from imagegen.service.token_service import token_service
from imagegen.service.user_balance_service import user_balance_service
from imagegen.service.user_service import user_service


class AccountService:
    """
    用户帐户认证service
    """
    LOGIN_USER_INFO_KEY = "login_user_info:"

    @atomic()
    async def create_user(self, username: str, email: str, password: str, role: RoleEnum = RoleEnum.USER) -> User:
        """
        创建用户，同时创建零余额记录
        """
        email = email.strip().lower()
        if await user_service.get_user_by_username(username):
            raise HttpBusinessException(HttpErrorCodeEnum.DATA_DUPLICATE, "用户名已被注册")
        if await user_service.get_user_by_email(email):
            raise HttpBusinessException(HttpErrorCodeEnum.DATA_DUPLICATE, "邮箱已被注册")

        password_hash, password_salt = PasswordUtils.hash_password(password)
        user = await user_service.model_class.create(
            username=username,
            email=email,
            password_hash=password_hash,
            password_salt=password_salt,
            role=role,
            state=StateEnum.ENABLED,
        )
        await user_balance_service.ensure_balance(user.id)
        logger.info(f"✅ 创建用户 {user.id}: {username}")
        return user

    async def register(self, username: str, email: str, password: str) -> LoginRes:
        """
        注册并登录，赠送新用户免费次数
        赠送失败只记录日志，不影响注册
        """
        user = await self.create_user(username, email, password)
        try:
            await entitlement_service.grant_new_user_free_credits(user.id)
        except Exception as e:
            logger.exception(f"❌ 用户 {user.id} 赠送免费次数失败: {e}")
        return await self.login(user)

    async def login_by_email(self, email: str, password: str) -> LoginRes:
        user = await user_service.get_user_by_email(email)
        if user is None or not PasswordUtils.verify_password(password, user.password_hash, user.password_salt):
            raise HttpBusinessException(HttpErrorCodeEnum.LOGIN_FAILED)
        if user.state != StateEnum.ENABLED:
            raise HttpBusinessException(HttpErrorCodeEnum.FORBIDDEN, "账号已被禁用")

        user.last_login = DateUtils.now()
        await user.save(update_fields=["last_login", "updated_at"])
        return await self.login(user)

    async def login(self, user: User) -> LoginRes:
        """
        签发 token，加入白名单，并缓存登录用户信息
        """
        token, expire_time = token_service.generate_token(user.id)
        await token_service.add_token_to_user(user.id, token, expire_time)

        login_user_info = LoginUserInfo.from_orm_object(user)
        await redis_client.set(
            f"{self.LOGIN_USER_INFO_KEY}{user.id}",
            login_user_info.model_dump(),
            expire=timedelta(days=config.auth.token_expire_days),
        )
        return LoginRes(token=token, user_info=login_user_info)

    async def logout(self):
        token = get_ctx().token
        if not token:
            return
        user_id, _ = await token_service.parse_token(token, check_whitelist=False)
        await token_service.remove_token_from_user(user_id, token)

    async def get_login_user_info(self) -> LoginUserInfo:
        """
        获取当前登录用户信息
        """
        token = get_ctx().token
        if not token:
            raise HttpBusinessException(HttpErrorCodeEnum.UNAUTHORIZED)

        user_id, _ = await token_service.parse_token(token)
        cached_data = await redis_client.get(f"{self.LOGIN_USER_INFO_KEY}{user_id}")
        if cached_data is None:
            raise HttpBusinessException(HttpErrorCodeEnum.TOKEN_EXPIRED, "登录信息已过期，请重新登录")
        return LoginUserInfo.model_validate(cached_data)

    async def require_admin(self) -> LoginUserInfo:
        login_user_info = await self.get_login_user_info()
        if not login_user_info.is_admin:
            raise HttpBusinessException(HttpErrorCodeEnum.FORBIDDEN, "需要管理员权限")
        return login_user_info

    async def init_default_admin(self):
        """
        启动时创建默认管理员（已有管理员则跳过）
        """
        if await user_service.has_admin():
            return
        admin = config.admin
        await self.create_user(admin.username, admin.email, admin.password, role=RoleEnum.ADMIN)
        logger.warning(f"⚠️ 已创建默认管理员 {admin.username}，请尽快修改默认密码")


account_service = AccountService()
