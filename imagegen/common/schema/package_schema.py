"""
套餐相关的 Schema 定义
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

__all__ = ["PackageCreate", "PackagePatch"]


class PackageCreate(BaseModel):
    """创建套餐"""
    name: str = Field(min_length=1, max_length=100, description="套餐名称")
    description: Optional[str] = Field(default=None, description="套餐描述")
    usage_count: int = Field(gt=0, description="包含的使用次数", alias="usageCount")
    validity_days: int = Field(gt=0, description="有效天数", alias="validityDays")
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2, description="价格")
    sort_order: int = Field(default=0, description="排序值", alias="sortOrder")
    is_active: bool = Field(default=True, description="是否上架", alias="isActive")

    model_config = {"populate_by_name": True}


class PackagePatch(BaseModel):
    """
    更新套餐，只允许修改下列字段，未传的字段保持不变
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=100, description="套餐名称")
    description: Optional[str] = Field(default=None, description="套餐描述")
    usage_count: Optional[int] = Field(default=None, gt=0, description="包含的使用次数", alias="usageCount")
    validity_days: Optional[int] = Field(default=None, gt=0, description="有效天数", alias="validityDays")
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2, description="价格")
    sort_order: Optional[int] = Field(default=None, description="排序值", alias="sortOrder")
    is_active: Optional[bool] = Field(default=None, description="是否上架", alias="isActive")

    model_config = {"populate_by_name": True}
