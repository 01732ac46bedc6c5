from enum import Enum


class StateEnum(str, Enum):
    ENABLED = "1"  # 启用
    DISABLED = "0"  # 禁用
