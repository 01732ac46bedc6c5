from pydantic import BaseModel, Field, field_validator, EmailStr

from imagegen.common.utils import ValidationUtils


class RegisterReq(BaseModel):
    """注册请求"""
    username: str = Field(description="用户名", min_length=3, max_length=32)
    email: EmailStr = Field(description="邮箱")
    password: str = Field(description="密码", min_length=6, max_length=32)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        return ValidationUtils.validate_username(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """
        校验密码强度
        要求：6-32位，必须包含字母和数字
        """
        return ValidationUtils.validate_password_strength(v)


class LoginReq(BaseModel):
    """邮箱密码登录请求"""
    email: EmailStr = Field(description="邮箱")
    password: str = Field(description="密码", min_length=1)
