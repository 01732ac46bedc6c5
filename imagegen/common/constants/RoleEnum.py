from enum import Enum


class RoleEnum(str, Enum):
    """
    系统角色枚举
    """
    ADMIN = "admin"  # 管理员
    USER = "user"  # 普通用户
