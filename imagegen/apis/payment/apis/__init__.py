from fastapi import APIRouter
from .balance_api import balance
from .epay_api import epay

payment_router = APIRouter()
payment_router.include_router(epay, tags=["易支付"])
payment_router.include_router(balance, tags=["余额支付"])

__all__ = ["payment_router"]
