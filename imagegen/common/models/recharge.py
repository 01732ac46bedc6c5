from enum import Enum

from tortoise import fields

from imagegen.common.base import DefaultModel


class RechargeStatus(str, Enum):
    PENDING = "pending"  # 待支付
    COMPLETED = "completed"  # 已完成
    FAILED = "failed"  # 失败或超时关闭
    REFUNDED = "refunded"  # 已退款


class PaymentMethod(str, Enum):
    WECHAT = "wechat"  # 微信支付
    ALIPAY = "alipay"  # 支付宝
    BALANCE = "balance"  # 余额支付
    MANUAL = "manual"  # 后台手动


class RechargeRecord(DefaultModel):
    """
    充值记录（支付单）
    状态流转：pending -> completed | failed，completed -> refunded
    """
    user_id = fields.IntField(description="用户ID")
    amount = fields.DecimalField(max_digits=10, decimal_places=2, description="金额")
    payment_method = fields.CharEnumField(PaymentMethod, max_length=16, description="支付方式")
    out_trade_no = fields.CharField(max_length=64, unique=True, description="商户订单号")
    transaction_id = fields.CharField(max_length=64, null=True, unique=True, description="支付网关交易号")
    package_id = fields.IntField(null=True, description="购买的套餐ID，为空表示纯充值")
    status = fields.CharEnumField(RechargeStatus, max_length=16, default=RechargeStatus.PENDING,
                                  description="状态")
    paid_at = fields.DatetimeField(null=True, description="支付完成时间")
    expire_time = fields.DatetimeField(null=True, description="待支付过期时间")
    refunded_at = fields.DatetimeField(null=True, description="退款时间")
    refund_reason = fields.CharField(max_length=255, null=True, description="退款原因")

    class Meta:
        table = "recharge_records"
        table_description = "充值记录表"
        indexes = [
            ("user_id", "status"),
        ]
