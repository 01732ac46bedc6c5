from decimal import Decimal

from pydantic import BaseModel, Field


class BalanceRes(BaseModel):
    """用户余额"""
    balance: Decimal = Field(description="当前余额")
    total_recharged: Decimal = Field(description="累计充值")
    total_consumed: Decimal = Field(description="累计消费")

    @classmethod
    def from_balance(cls, balance) -> "BalanceRes":
        return cls(
            balance=balance.balance,
            total_recharged=balance.total_recharged,
            total_consumed=balance.total_consumed,
        )
