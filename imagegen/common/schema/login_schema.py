"""
登录相关的 Schema 定义
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from imagegen.common.constants import RoleEnum
from imagegen.common.models import User
from imagegen.common.utils import DateUtils

__all__ = ["UserInfo", "LoginUserInfo", "LoginRes"]


class UserInfo(BaseModel):
    """
    用户基本信息（不包含密码等敏感信息），可以安全地缓存到 Redis 或返回给前端
    """
    id: int = Field(description="用户ID")
    username: str = Field(description="用户名")
    email: str = Field(description="邮箱")
    role: RoleEnum = Field(description="角色")
    state: str = Field(description="状态：1=正常，0=禁用")

    @classmethod
    def from_orm_object(cls, user: User) -> "UserInfo":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            state=user.state.value if hasattr(user.state, "value") else user.state,
        )


class LoginUserInfo(BaseModel):
    """
    登录用户信息缓存结构
    会员状态会随套餐购买变化，因此不放入缓存，需要时实时查询
    """
    user: UserInfo = Field(description="用户基本信息")
    login_at: Optional[datetime] = Field(default=None, description="登录时间")

    @property
    def is_admin(self) -> bool:
        return self.user.role == RoleEnum.ADMIN

    @classmethod
    def from_orm_object(cls, user: User) -> "LoginUserInfo":
        return cls(user=UserInfo.from_orm_object(user), login_at=DateUtils.now())


class LoginRes(BaseModel):
    """登录返回数据模型"""
    token: str = Field(description="token")
    user_info: LoginUserInfo = Field(description="用户信息")
