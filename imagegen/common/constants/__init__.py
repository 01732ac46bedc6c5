from .RoleEnum import RoleEnum
from .StateEnum import StateEnum

__all__ = ["StateEnum", "RoleEnum"]
