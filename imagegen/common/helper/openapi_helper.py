"""
OpenAPI/Swagger 文档辅助函数
业务错误按 HttpErrorCodeEnum 中的 HTTP 状态码分组展示
"""
from typing import Dict, Any, List, Optional

from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.schema import ErrorResponse


def generate_responses(
    error_codes: Optional[List[HttpErrorCodeEnum]] = None,
    include_default_errors: bool = True,
    hide_422: bool = True
) -> Dict[int, Dict[str, Any]]:
    """
    生成 FastAPI 路由的 responses 参数

    使用示例:
    ```python
    @api.post(
        "/payment/balance-pay",
        response_model=BaseResponse[BalancePayRes],
        responses=generate_responses([HttpErrorCodeEnum.INSUFFICIENT_BALANCE])
    )
    ```
    """
    all_error_codes: List[HttpErrorCodeEnum] = []
    if include_default_errors:
        all_error_codes.extend([HttpErrorCodeEnum.ERROR, HttpErrorCodeEnum.PARAM_ERROR])
    if error_codes:
        all_error_codes.extend(error_codes)

    responses: Dict[int, Dict[str, Any]] = {}
    for error_code in all_error_codes:
        entry = responses.setdefault(error_code.status_code, {
            "description": error_code.message,
            "model": ErrorResponse,
            "content": {"application/json": {"examples": {}}},
        })
        entry["content"]["application/json"]["examples"][error_code.code] = {
            "summary": error_code.message,
            "value": {
                "code": error_code.code,
                "isSuccess": False,
                "message": error_code.message
            }
        }

    if hide_422:
        responses[422] = {"model": None}

    return responses
