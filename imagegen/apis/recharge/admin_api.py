from fastapi import APIRouter, Path, Query

from imagegen.apis.account.schema.response import BalanceRes
from imagegen.apis.recharge.schema.request import AdjustBalanceReq, ManualRechargeReq, RefundReq
from imagegen.common.exception.exception import NotFoundException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.common.schema import BaseResponse, ListData, PaymentMethodStats, RechargeChartPoint, RechargeStats
from imagegen.core.logger_util import logger
from imagegen.service.account_service import account_service
from imagegen.service.recharge_service import recharge_service
from imagegen.service.user_balance_service import user_balance_service
from imagegen.service.user_service import user_service

admin = APIRouter()


@admin.get("/admin/recharge/stats", summary="充值统计概览", response_model=BaseResponse[RechargeStats])
async def get_recharge_stats():
    await account_service.require_admin()
    return ResponseHelper.success(await recharge_service.get_recharge_stats())


@admin.get(
    "/admin/recharge/chart-data",
    summary="充值趋势",
    description="最近 days 天每日的收入和订单数",
    response_model=BaseResponse[ListData[RechargeChartPoint]],
)
async def get_chart_data(days: int = Query(30, ge=1, le=365, description="统计天数")):
    await account_service.require_admin()
    return ResponseHelper.success(await recharge_service.get_chart_data(days))


@admin.get(
    "/admin/recharge/payment-stats",
    summary="支付方式统计",
    response_model=BaseResponse[ListData[PaymentMethodStats]],
)
async def get_payment_method_stats():
    await account_service.require_admin()
    return ResponseHelper.success(await recharge_service.get_payment_method_stats())


@admin.get(
    "/admin/recharge/by-out-trade-no/{out_trade_no}",
    summary="按商户订单号查询充值记录",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]),
)
async def get_recharge_by_out_trade_no(out_trade_no: str = Path(..., max_length=64)):
    await account_service.require_admin()
    record = await recharge_service.get_by_out_trade_no(out_trade_no)
    if not record:
        raise NotFoundException("充值记录不存在")
    return ResponseHelper.success(record)


@admin.get(
    "/admin/recharge/{recharge_id}",
    summary="充值记录详情",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]),
)
async def get_recharge(recharge_id: int = Path(..., gt=0)):
    await account_service.require_admin()
    return ResponseHelper.success(await recharge_service.get_or_raise(recharge_id))


@admin.post(
    "/admin/recharge/{recharge_id}/refund",
    summary="充值记录退款",
    description="只有已完成的充值记录可以退款，已发放的套餐次数不收回",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND, HttpErrorCodeEnum.STATE_CONFLICT]),
)
async def refund(req: RefundReq, recharge_id: int = Path(..., gt=0)):
    await account_service.require_admin()
    return ResponseHelper.success(await recharge_service.refund(recharge_id, req.reason))


@admin.post(
    "/admin/recharge/manual",
    summary="后台手动充值",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]),
)
async def manual_recharge(req: ManualRechargeReq):
    await account_service.require_admin()
    await user_service.get_or_raise(req.user_id)
    return ResponseHelper.success(await recharge_service.manual_recharge(req.user_id, req.amount, req.remark))


@admin.post(
    "/admin/recharge/adjust-balance",
    summary="后台调整余额",
    description="不生成充值记录，直接按金额正负增减用户余额",
    response_model=BaseResponse[BalanceRes],
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]),
)
async def adjust_balance(req: AdjustBalanceReq):
    login_user_info = await account_service.require_admin()
    await user_service.get_or_raise(req.user_id)
    balance = await user_balance_service.update_user_balance(req.user_id, req.amount)
    logger.info(f"管理员 {login_user_info.user.id} 调整用户 {req.user_id} 余额 {req.amount}")
    return ResponseHelper.success(BalanceRes.from_balance(balance))
