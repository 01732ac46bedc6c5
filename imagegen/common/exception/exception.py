from decimal import Decimal
from typing import Any, Optional

from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum


class HttpBusinessException(Exception):
    """基础业务异常类"""
    message: str
    code: str
    status_code: int
    data: Optional[Any]

    def __init__(self, error_code=HttpErrorCodeEnum.ERROR, message="", data=None):
        self.error_code = error_code
        self.message = message if message else error_code.message
        self.code = error_code.code
        self.status_code = error_code.status_code
        self.data = data
        super().__init__(self.message)


class ValidationException(HttpBusinessException):
    """请求参数不合法，不可重试"""

    def __init__(self, message=""):
        super().__init__(HttpErrorCodeEnum.PARAM_ERROR, message)


class NotFoundException(HttpBusinessException):
    """用户、充值记录、套餐等不存在"""

    def __init__(self, message=""):
        super().__init__(HttpErrorCodeEnum.NOT_FOUND, message)


class StateConflictException(HttpBusinessException):
    """充值记录状态流转不合法"""

    def __init__(self, message=""):
        super().__init__(HttpErrorCodeEnum.STATE_CONFLICT, message)


class SignatureInvalidException(HttpBusinessException):
    def __init__(self, message=""):
        super().__init__(HttpErrorCodeEnum.SIGNATURE_INVALID, message)


class ExternalServiceException(HttpBusinessException):
    """支付网关等外部服务不可用或返回非成功结果"""

    def __init__(self, message=""):
        super().__init__(HttpErrorCodeEnum.EXTERNAL_SERVICE_ERROR, message)


class InsufficientBalanceException(HttpBusinessException):
    """余额不足，携带当前余额、所需金额和差额"""

    def __init__(self, current_balance: Decimal, required_amount: Decimal):
        self.current_balance = current_balance
        self.required_amount = required_amount
        self.shortfall = required_amount - current_balance
        super().__init__(
            HttpErrorCodeEnum.INSUFFICIENT_BALANCE,
            data={
                "currentBalance": current_balance,
                "requiredAmount": required_amount,
                "shortfall": self.shortfall,
            }
        )
