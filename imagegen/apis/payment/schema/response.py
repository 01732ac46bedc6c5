from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CreatePaymentRes(BaseModel):
    out_trade_no: str = Field(description="商户订单号")
    recharge_id: int = Field(description="充值记录ID")
    trade_no: Optional[str] = Field(default=None, description="支付网关订单号")
    payurl: Optional[str] = Field(default=None, description="支付跳转链接")
    qrcode: Optional[str] = Field(default=None, description="支付二维码链接")
    amount: Decimal = Field(description="支付金额")


class BalancePayRes(BaseModel):
    transaction_id: str = Field(description="支付记录订单号")
    amount: Decimal = Field(description="支付金额")
    recharge_id: int = Field(description="支付记录ID")
    remaining_balance: Decimal = Field(description="支付后余额")


class PaymentMethodRes(BaseModel):
    type: str = Field(description="支付方式")
    name: str = Field(description="名称")
    icon: str = Field(description="图标")
    description: str = Field(description="说明")
