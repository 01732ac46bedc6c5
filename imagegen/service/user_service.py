from typing import Optional

from imagegen.common.base import BaseService
from imagegen.common.constants import RoleEnum
from imagegen.common.models import User


class UserService(BaseService[User]):
    """
    用户service
    """
    not_found_message = "用户不存在"

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        使用邮箱获取用户
        :param email: 邮箱地址
        """
        return await self.get_one(email=email.strip().lower())

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self.get_one(username=username)

    async def has_admin(self) -> bool:
        return await self.query(role=RoleEnum.ADMIN).exists()


user_service = UserService()
