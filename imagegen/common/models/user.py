from tortoise import fields

from imagegen.common.base import DefaultModel
from imagegen.common.constants import RoleEnum, StateEnum


class User(DefaultModel):
    """
    用户主表
    会员状态直接保存在用户表上，由套餐购买时延长
    """
    username = fields.CharField(max_length=64, unique=True, description="用户名")
    email = fields.CharField(max_length=128, unique=True, description="邮箱")
    password_hash = fields.CharField(max_length=128, description="密码哈希")
    password_salt = fields.CharField(max_length=64, description="密码盐值")
    role = fields.CharEnumField(RoleEnum, max_length=16, default=RoleEnum.USER, description="角色")
    state = fields.CharEnumField(StateEnum, max_length=1, default=StateEnum.ENABLED, description="状态：1=启用，0=禁用")
    is_member = fields.BooleanField(default=False, description="是否会员")
    member_expires_at = fields.DatetimeField(null=True, description="会员到期时间")
    last_login = fields.DatetimeField(null=True, description="最后登录时间")

    sensitive_fields = frozenset({"password_hash", "password_salt"})

    class Meta:
        table = "users"
        table_description = "用户表"
