from fastapi.routing import APIRouter

from imagegen.apis.account.schema.request import LoginReq, RegisterReq
from imagegen.apis.account.schema.response import BalanceRes
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.common.schema import BaseResponse, LoginRes, LoginUserInfo
from imagegen.service.account_service import account_service
from imagegen.service.user_balance_service import user_balance_service

api = APIRouter()


@api.post(
    "/account/register",
    summary="邮箱注册",
    description="注册成功后自动登录，并赠送新用户免费次数",
    response_model=BaseResponse[LoginRes],
    responses=generate_responses([HttpErrorCodeEnum.DATA_DUPLICATE]),
)
async def register(req: RegisterReq):
    res = await account_service.register(req.username, req.email, req.password)
    return ResponseHelper.success(res)


@api.post(
    "/account/login",
    summary="邮箱密码登录",
    response_model=BaseResponse[LoginRes],
    responses=generate_responses([HttpErrorCodeEnum.LOGIN_FAILED, HttpErrorCodeEnum.FORBIDDEN]),
)
async def login(req: LoginReq):
    res = await account_service.login_by_email(req.email, req.password)
    return ResponseHelper.success(res)


@api.post("/account/logout", summary="退出登录", response_model=BaseResponse)
async def logout():
    await account_service.logout()
    return ResponseHelper.success()


@api.get("/account/get-user-info", summary="获取用户信息", response_model=BaseResponse[LoginUserInfo])
async def get_user_info():
    login_user_info = await account_service.get_login_user_info()
    return ResponseHelper.success(login_user_info)


@api.get("/account/balance", summary="获取当前用户余额", response_model=BaseResponse[BalanceRes])
async def get_balance():
    login_user_info = await account_service.get_login_user_info()
    balance = await user_balance_service.ensure_balance(login_user_info.user.id)
    return ResponseHelper.success(BalanceRes.from_balance(balance))
