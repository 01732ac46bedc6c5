"""
统一 JSON 响应

响应结构：{code, isSuccess, message, data?}，所有 key 转为小驼峰
- 金额（Decimal）输出为两位小数字符串
- 时间输出为 "%Y-%m-%d %H:%M:%S"
- 列表数据包装为 {list: [...]}
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import pydantic
from starlette.responses import JSONResponse

from imagegen.common.base.base_model import DefaultModel
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_jsonable(data: Any) -> Any:
    """
    把模型、pydantic 对象以及 Decimal / datetime / Enum 转成可以直接 JSON 序列化的结构，
    dict 的 key 同时转为小驼峰
    """
    if isinstance(data, DefaultModel):
        return to_jsonable(data.to_dict())
    if isinstance(data, pydantic.BaseModel):
        return to_jsonable(data.model_dump())
    if isinstance(data, dict):
        return {snake_to_camel(str(k)): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, Decimal):
        return format(data, ".2f")
    if isinstance(data, datetime):
        return data.strftime(DATETIME_FORMAT)
    if isinstance(data, date):
        return data.isoformat()
    if isinstance(data, Enum):
        return data.value
    return data


def _envelope(code: str, is_success: bool, message: str, data: Any, status_code: int) -> JSONResponse:
    response = {
        "code": code,
        "isSuccess": is_success,
        "message": message,
    }
    if data is not None:
        if isinstance(data, (list, tuple)):
            data = {"list": data}
        response["data"] = to_jsonable(data)
    return JSONResponse(
        content=response,
        status_code=status_code,
        headers={"Content-Type": "application/json; charset=utf-8"}
    )


class ResponseHelper:
    @staticmethod
    def success(data: Any = None, message: str = "成功") -> JSONResponse:
        return _envelope(HttpErrorCodeEnum.SUCCESS.code, True, message, data, 200)

    @staticmethod
    def error(
            code: str = HttpErrorCodeEnum.ERROR.code,
            message: str = HttpErrorCodeEnum.ERROR.message,
            data: Any = None,
            status_code: int = HttpErrorCodeEnum.ERROR.status_code
    ) -> JSONResponse:
        return _envelope(code, False, message, data, status_code)

    @staticmethod
    def error_with_error_code(error_code: HttpErrorCodeEnum, message: str = "") -> JSONResponse:
        return ResponseHelper.error(
            code=error_code.code,
            message=message or error_code.message,
            status_code=error_code.status_code
        )
