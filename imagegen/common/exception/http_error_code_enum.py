from enum import Enum


class HttpErrorCodeEnum(Enum):
    """
    业务错误码
    每一项为 (业务码, 默认提示, HTTP状态码)
    """
    SUCCESS = ("0", "成功", 200)
    ERROR = ("500", "系统错误", 500)
    SHOW_MESSAGE = ("1000", "操作失败", 400)
    PARAM_ERROR = ("1001", "参数校验错误", 400)
    DATA_DUPLICATE = ("1002", "数据重复", 409)
    NOT_FOUND = ("1004", "数据不存在", 404)
    METHOD_NOT_ALLOWED = ("1005", "请求方法不允许", 405)

    UNAUTHORIZED = ("2001", "未登录", 401)
    TOKEN_INVALID = ("2002", "登录凭证无效", 401)
    TOKEN_EXPIRED = ("2003", "登录已过期", 401)
    LOGIN_FAILED = ("2004", "邮箱或密码错误", 400)
    FORBIDDEN = ("2005", "无权访问", 403)

    INSUFFICIENT_BALANCE = ("3001", "账户余额不足", 400)
    SIGNATURE_INVALID = ("3002", "签名验证失败", 400)
    STATE_CONFLICT = ("3003", "当前状态不允许该操作", 409)
    EXTERNAL_SERVICE_ERROR = ("3004", "第三方服务异常", 502)
    PAYMENT_DISABLED = ("3005", "支付方式未启用", 400)

    def __init__(self, code: str, message: str, status_code: int):
        self.code = code
        self.message = message
        self.status_code = status_code
