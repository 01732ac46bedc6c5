from fastapi import APIRouter

from imagegen.apis.payment.schema.request import BalancePayReq
from imagegen.apis.payment.schema.response import BalancePayRes
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.common.schema import BaseResponse
from imagegen.service.account_service import account_service
from imagegen.service.balance_pay_service import balance_pay_service

balance = APIRouter()


@balance.post(
    "/payment/balance-pay",
    summary="余额支付",
    description="余额不足时返回 3001，data 中包含 currentBalance / requiredAmount / shortfall",
    response_model=BaseResponse[BalancePayRes],
    responses=generate_responses([
        HttpErrorCodeEnum.INSUFFICIENT_BALANCE,
        HttpErrorCodeEnum.NOT_FOUND,
        HttpErrorCodeEnum.STATE_CONFLICT,
        HttpErrorCodeEnum.PAYMENT_DISABLED,
    ]),
)
async def balance_pay(req: BalancePayReq):
    login_user_info = await account_service.get_login_user_info()
    res = await balance_pay_service.pay(
        login_user_info.user.id,
        req.amount,
        package_id=req.package_id,
        recharge_id=req.recharge_id,
    )
    return ResponseHelper.success(BalancePayRes(**res))
