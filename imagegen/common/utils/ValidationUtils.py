"""
验证工具类
提供注册/登录用到的格式校验，供 pydantic field_validator 调用
"""
import re
from decimal import Decimal, InvalidOperation


class ValidationUtils:
    """验证工具类"""

    # 字母开头，字母数字下划线，3-32位
    USERNAME_PATTERN = r'^[a-zA-Z][a-zA-Z0-9_]{2,31}$'

    @staticmethod
    def validate_username(username: str) -> str:
        if not username:
            raise ValueError('用户名不能为空')

        username = username.strip()
        if not re.match(ValidationUtils.USERNAME_PATTERN, username):
            raise ValueError('用户名必须以字母开头，只能包含字母、数字和下划线，长度3-32位')
        return username

    @staticmethod
    def validate_password_strength(password: str,
                                   min_length: int = 6,
                                   max_length: int = 32,
                                   require_letter: bool = True,
                                   require_digit: bool = True) -> str:
        """
        验证密码强度

        :raises ValueError: 密码不符合要求
        """
        if not password:
            raise ValueError('密码不能为空')

        if len(password) < min_length:
            raise ValueError(f'密码长度不能少于{min_length}位')

        if len(password) > max_length:
            raise ValueError(f'密码长度不能超过{max_length}位')

        if require_letter and not any(c.isalpha() for c in password):
            raise ValueError('密码必须包含字母')

        if require_digit and not any(c.isdigit() for c in password):
            raise ValueError('密码必须包含数字')

        return password

    @staticmethod
    def validate_amount(amount, min_amount: Decimal = Decimal("0.01"),
                        max_amount: Decimal = Decimal("99999.99")) -> Decimal:
        """
        校验金额：最多两位小数，范围 [min_amount, max_amount]
        """
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValueError('金额格式不正确')

        if value != value.quantize(Decimal("0.01")):
            raise ValueError('金额最多保留两位小数')
        if value < min_amount:
            raise ValueError(f'金额不能小于{min_amount}')
        if value > max_amount:
            raise ValueError(f'金额不能大于{max_amount}')
        return value.quantize(Decimal("0.01"))
