from decimal import Decimal

from tortoise import fields

from imagegen.common.base import DefaultModel


class UserBalance(DefaultModel):
    """
    用户余额表，与用户一对一
    """
    user_id = fields.IntField(unique=True, description="用户ID")
    balance = fields.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"), description="当前余额")
    total_recharged = fields.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"),
                                          description="累计充值金额")
    total_consumed = fields.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"),
                                         description="累计消费金额")

    class Meta:
        table = "user_balances"
        table_description = "用户余额表"
