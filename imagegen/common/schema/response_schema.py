"""
通用响应模型，用于 Swagger 文档生成

所有接口统一返回 {code, isSuccess, message, data} 结构，
支付网关异步通知接口除外（返回纯文本 success / fail）
"""
from typing import TypeVar, Generic, Optional, List
from pydantic import BaseModel, Field, ConfigDict


T = TypeVar('T')

__all__ = ["BaseResponse", "ErrorResponse", "ListData"]


class BaseResponse(BaseModel, Generic[T]):
    """
    基础响应模型
    """
    code: str = Field(default="0", description="响应码，0表示成功")
    isSuccess: bool = Field(default=True, description="是否成功")
    message: str = Field(default="成功", description="响应消息")
    data: Optional[T] = Field(default=None, description="响应数据")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "0",
                "isSuccess": True,
                "message": "成功",
                "data": None
            }
        }
    )


class ErrorResponse(BaseModel):
    """
    错误响应模型，data 只在部分业务错误（如余额不足）时返回
    """
    code: str = Field(description="错误码")
    isSuccess: bool = Field(default=False, description="是否成功，固定为 False")
    message: str = Field(description="错误消息")
    data: Optional[dict] = Field(default=None, description="错误附加信息")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "3001",
                "isSuccess": False,
                "message": "账户余额不足",
                "data": {"currentBalance": 5.0, "requiredAmount": 10.0, "shortfall": 5.0}
            }
        }
    )


class ListData(BaseModel, Generic[T]):
    """列表数据（ResponseHelper 会把列表包装为 {list: [...]}）"""
    list: List[T] = Field(default_factory=list, description="数据列表")
