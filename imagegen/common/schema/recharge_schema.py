"""
充值统计相关的 Schema 定义
金额只统计已完成的充值记录
"""
import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

__all__ = ["RechargeStats", "RechargeChartPoint", "PaymentMethodStats"]


class RechargeStats(BaseModel):
    """充值概览"""
    total_revenue: Decimal = Field(description="累计收入")
    today_revenue: Decimal = Field(description="今日收入")
    month_revenue: Decimal = Field(description="本月收入")
    total_orders: int = Field(description="累计订单数")
    today_orders: int = Field(description="今日订单数")
    month_orders: int = Field(description="本月订单数")
    pending_orders: int = Field(description="待支付订单数")
    completed_orders: int = Field(description="已完成订单数")
    failed_orders: int = Field(description="失败订单数")
    refunded_orders: int = Field(description="已退款订单数")
    avg_order_amount: Decimal = Field(description="已完成订单的平均金额")


class RechargeChartPoint(BaseModel):
    date: datetime.date = Field(description="日期")
    revenue: Decimal = Field(description="当日收入")
    orders: int = Field(description="当日订单数")


class PaymentMethodStats(BaseModel):
    payment_method: str = Field(description="支付方式")
    count: int = Field(description="订单数")
    revenue: Decimal = Field(description="收入")
