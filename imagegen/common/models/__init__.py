from .user import User
from .balance import UserBalance
from .package import Package, UserPackage, UserPackageStatus
from .recharge import RechargeRecord, RechargeStatus, PaymentMethod

__all__ = [
    "User",
    "UserBalance",
    "Package",
    "UserPackage",
    "UserPackageStatus",
    "RechargeRecord",
    "RechargeStatus",
    "PaymentMethod",
]
