from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class RefundReq(BaseModel):
    reason: str = Field(min_length=1, max_length=255, description="退款原因")


class ManualRechargeReq(BaseModel):
    """后台手动充值"""
    user_id: int = Field(gt=0, description="用户ID", alias="userId")
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2, description="充值金额")
    remark: Optional[str] = Field(default=None, max_length=255, description="备注")

    model_config = {"populate_by_name": True}


class AdjustBalanceReq(BaseModel):
    """
    后台调整余额：正数增加（计入累计充值），负数扣减（计入累计消费，最多扣到 0）
    """
    user_id: int = Field(gt=0, description="用户ID", alias="userId")
    amount: Decimal = Field(max_digits=10, decimal_places=2, description="调整金额，可为负数")

    model_config = {"populate_by_name": True}
