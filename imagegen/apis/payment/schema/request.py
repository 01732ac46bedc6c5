from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class CreatePaymentReq(BaseModel):
    """创建第三方支付订单"""
    type: Literal["wxpay", "alipay"] = Field(description="支付方式")
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2, description="支付金额")
    package_id: Optional[int] = Field(default=None, gt=0, description="购买的套餐ID，为空表示充值")
    recharge_id: Optional[int] = Field(default=None, gt=0, description="重新支付已有的待支付记录")


class BalancePayReq(BaseModel):
    """余额支付"""
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2, description="支付金额")
    package_id: Optional[int] = Field(default=None, gt=0, description="购买的套餐ID")
    recharge_id: Optional[int] = Field(default=None, gt=0, description="改用余额支付的待支付记录")
