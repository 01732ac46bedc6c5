from decimal import Decimal
from enum import Enum

from tortoise import fields

from imagegen.common.base import DefaultModel


class Package(DefaultModel):
    """套餐目录"""
    name = fields.CharField(max_length=100, unique=True, description="套餐名称")
    description = fields.TextField(null=True, description="套餐描述")
    usage_count = fields.IntField(description="包含的使用次数")
    validity_days = fields.IntField(description="有效天数")
    price = fields.DecimalField(max_digits=10, decimal_places=2, description="价格")
    sort_order = fields.IntField(default=0, description="排序值，越小越靠前")
    is_active = fields.BooleanField(default=True, description="是否上架")

    class Meta:
        table = "packages"
        table_description = "套餐表"


class UserPackageStatus(str, Enum):
    ACTIVE = "active"  # 可用
    EXPIRED = "expired"  # 已过期
    EXHAUSTED = "exhausted"  # 次数已用完


class UserPackage(DefaultModel):
    """
    用户套餐（使用次数授予记录）
    package_id 为空表示免费赠送或管理员赠送，套餐删除后同样置空
    """
    user_id = fields.IntField(description="用户ID")
    package_id = fields.IntField(null=True, description="来源套餐ID")
    package_name = fields.CharField(max_length=100, description="套餐名称快照")
    times_total = fields.IntField(description="总次数")
    times_used = fields.IntField(default=0, description="已用次数")
    times_remaining = fields.IntField(description="剩余次数")
    price = fields.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"), description="支付金额")
    expires_at = fields.DatetimeField(null=True, description="过期时间，为空表示永不过期")
    status = fields.CharEnumField(UserPackageStatus, max_length=16, default=UserPackageStatus.ACTIVE,
                                  description="状态")
    recharge_id = fields.IntField(null=True, unique=True, description="关联的充值记录ID")

    class Meta:
        table = "user_packages"
        table_description = "用户套餐表"
        indexes = [
            ("user_id", "status"),
        ]
