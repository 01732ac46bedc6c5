from . import PasswordUtils, DateUtils
from .ValidationUtils import ValidationUtils
from .EpayUtils import EpayUtils, epay_utils

__all__ = ["PasswordUtils", "DateUtils", "ValidationUtils", "EpayUtils", "epay_utils"]
