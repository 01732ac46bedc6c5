from fastapi import APIRouter

from imagegen.apis.package.schema.response import AvailableTimesRes, MemberInfoRes
from imagegen.common.helper import ResponseHelper
from imagegen.common.schema import BaseResponse
from imagegen.service.account_service import account_service
from imagegen.service.entitlement_service import entitlement_service
from imagegen.service.package_service import package_service

api = APIRouter()


@api.get("/packages/active", summary="上架中的套餐列表")
async def get_active_packages():
    return ResponseHelper.success(await package_service.get_active_packages())


@api.get("/packages/my", summary="我的套餐记录", description="按获得时间倒序，status 为查询时计算的有效状态")
async def get_my_packages():
    login_user_info = await account_service.get_login_user_info()
    return ResponseHelper.success(await entitlement_service.get_user_packages(login_user_info.user.id))


@api.get("/packages/available-times", summary="当前可用次数", response_model=BaseResponse[AvailableTimesRes])
async def get_available_times():
    login_user_info = await account_service.get_login_user_info()
    available_times = await entitlement_service.get_available_times(login_user_info.user.id)
    return ResponseHelper.success(AvailableTimesRes(available_times=available_times))


@api.get("/packages/member-info", summary="会员信息", response_model=BaseResponse[MemberInfoRes])
async def get_member_info():
    login_user_info = await account_service.get_login_user_info()
    member_info = await entitlement_service.get_member_info(login_user_info.user.id)
    return ResponseHelper.success(MemberInfoRes(**member_info))
