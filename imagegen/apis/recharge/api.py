from fastapi import APIRouter, Path

from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.service.account_service import account_service
from imagegen.service.recharge_service import recharge_service

api = APIRouter()


@api.get("/recharge/my-records", summary="我的充值记录")
async def get_my_records():
    login_user_info = await account_service.get_login_user_info()
    records = await recharge_service.list(filters={"user_id": login_user_info.user.id}, order_by=["-created_at", "-id"])
    return ResponseHelper.success(records)


@api.get(
    "/recharge/my-records/{recharge_id}",
    summary="我的充值记录详情",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND, HttpErrorCodeEnum.FORBIDDEN]),
)
async def get_my_record(recharge_id: int = Path(..., gt=0)):
    login_user_info = await account_service.get_login_user_info()
    return ResponseHelper.success(await recharge_service.get_user_recharge(recharge_id, login_user_info.user.id))
