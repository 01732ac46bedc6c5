from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Path, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from imagegen.apis.payment.schema.request import CreatePaymentReq
from imagegen.apis.payment.schema.response import CreatePaymentRes, PaymentMethodRes
from imagegen.common.config import config
from imagegen.common.exception.exception import (
    HttpBusinessException,
    NotFoundException,
    SignatureInvalidException,
    StateConflictException,
    ValidationException,
)
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.common.middleware.RequestContextMiddleware import get_ctx
from imagegen.common.models import Package, PaymentMethod, RechargeStatus
from imagegen.common.schema import BaseResponse, ListData
from imagegen.common.tasks.celery_task.recharge_tasks import schedule_close_expired_recharge
from imagegen.common.utils import EpayUtils, epay_utils
from imagegen.core.logger_util import logger
from imagegen.core.redis_client import redis_client
from imagegen.service.account_service import account_service
from imagegen.service.package_service import package_service
from imagegen.service.recharge_service import recharge_service

epay = APIRouter()

PAYMENT_CREATE_LOCK_KEY = "epay:create"
PAYMENT_LOCK_EXPIRE = 10  # 创建支付订单锁过期时间（秒）
PAYMENT_LOCK_TIMEOUT = 5.0  # 创建支付订单锁等待超时（秒）

PAY_TYPE_METHODS = {
    "wxpay": PaymentMethod.WECHAT,
    "alipay": PaymentMethod.ALIPAY,
}


def _check_pay_type_enabled(pay_type: str):
    enabled = {
        "wxpay": config.payment.wxpay_enabled,
        "alipay": config.payment.alipay_enabled,
    }.get(pay_type, False)
    if not enabled:
        raise HttpBusinessException(HttpErrorCodeEnum.PAYMENT_DISABLED)


async def _get_package_for_amount(package_id: Optional[int], amount: Decimal) -> Optional[Package]:
    return await package_service.get_purchasable(package_id, amount) if package_id else None


@epay.post(
    "/payment/create",
    summary="创建易支付订单",
    description="先生成待支付的充值记录，再向支付网关下单；超时未支付的记录由延时任务关闭",
    response_model=BaseResponse[CreatePaymentRes],
    responses=generate_responses([
        HttpErrorCodeEnum.NOT_FOUND,
        HttpErrorCodeEnum.STATE_CONFLICT,
        HttpErrorCodeEnum.PAYMENT_DISABLED,
        HttpErrorCodeEnum.EXTERNAL_SERVICE_ERROR,
    ]),
)
async def create_payment(req: CreatePaymentReq):
    login_user_info = await account_service.get_login_user_info()
    user_id = login_user_info.user.id
    _check_pay_type_enabled(req.type)
    epay_utils.ensure_available()

    method = PAY_TYPE_METHODS[req.type]
    # 同一用户同时只允许创建一笔支付订单，防止重复点击生成多条记录
    async with redis_client.lock(f"{PAYMENT_CREATE_LOCK_KEY}:{user_id}",
                                 expire=PAYMENT_LOCK_EXPIRE, timeout=PAYMENT_LOCK_TIMEOUT):
        if req.recharge_id:
            record = await recharge_service.get_user_pending_recharge(req.recharge_id, user_id)
            if record.amount != req.amount or record.package_id != req.package_id:
                raise ValidationException("支付金额或套餐与待支付记录不一致")
            package = await _get_package_for_amount(record.package_id, record.amount)
            if record.payment_method != method:
                await recharge_service.update(
                    {"id": record.id, "status": RechargeStatus.PENDING},
                    {"payment_method": method},
                )
        else:
            package = await _get_package_for_amount(req.package_id, req.amount)
            record = await recharge_service.create_recharge(user_id, req.amount, method, package_id=req.package_id)
            schedule_close_expired_recharge(record.id, record.expire_time)

    result = await epay_utils.create_order(
        pay_type=req.type,
        out_trade_no=record.out_trade_no,
        name=f"套餐购买 - {package.name}" if package else "充值服务",
        money=format(record.amount, ".2f"),
        clientip=get_ctx().client_ip,
    )
    return ResponseHelper.success(CreatePaymentRes(
        out_trade_no=record.out_trade_no,
        recharge_id=record.id,
        trade_no=str(result["trade_no"]) if result.get("trade_no") else None,
        payurl=result.get("payurl"),
        qrcode=result.get("qrcode"),
        amount=record.amount,
    ))


@epay.post("/payment/notify", summary="易支付异步通知", response_class=PlainTextResponse)
async def epay_notify(request: Request):
    """
    支付网关异步通知，响应体必须是纯文本 success / fail
    - 签名错误：fail，不做任何修改
    - 重复通知、订单已关闭等状态冲突：success，避免网关无意义重试
    - 其他处理失败：fail，由网关重试
    """
    notify_data = dict(await request.form())
    out_trade_no = notify_data.get("out_trade_no")
    logger.info(f"收到易支付通知 - 订单号: {out_trade_no}, 状态: {notify_data.get('trade_status')}")

    try:
        epay_utils.check_notify(notify_data)
    except SignatureInvalidException as e:
        logger.error(f"❌ {e.message} - 订单号: {out_trade_no}")
        return PlainTextResponse("fail", status_code=400)

    if notify_data.get("trade_status") != EpayUtils.TRADE_SUCCESS:
        return PlainTextResponse("success")

    try:
        await recharge_service.confirm_by_out_trade_no(
            out_trade_no,
            notify_data.get("trade_no"),
            notify_data.get("money"),
        )
    except StateConflictException as e:
        logger.warning(f"⚠️ 易支付通知状态冲突 - 订单号: {out_trade_no}, {e.message}")
    except Exception as e:
        logger.exception(f"❌ 处理易支付通知失败 - 订单号: {out_trade_no}, 错误: {e}")
        return PlainTextResponse("fail", status_code=500)
    return PlainTextResponse("success")


@epay.get("/payment/return", summary="易支付同步跳转")
async def epay_return(
        out_trade_no: str = Query(default=""),
        trade_no: str = Query(default=""),
        trade_status: str = Query(default=""),
):
    if trade_status == EpayUtils.TRADE_SUCCESS:
        return RedirectResponse(f"/payment/success?out_trade_no={out_trade_no}&trade_no={trade_no}")
    return RedirectResponse(f"/payment/failed?out_trade_no={out_trade_no}")


@epay.get(
    "/payment/query/{out_trade_no}",
    summary="查询支付网关订单状态",
    responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND, HttpErrorCodeEnum.EXTERNAL_SERVICE_ERROR]),
)
async def query_payment(out_trade_no: str = Path(..., max_length=64)):
    login_user_info = await account_service.get_login_user_info()
    record = await recharge_service.get_by_out_trade_no(out_trade_no)
    if not record or record.user_id != login_user_info.user.id:
        raise NotFoundException("充值记录不存在")
    return ResponseHelper.success(await epay_utils.query_order(out_trade_no))


@epay.get("/payment/methods", summary="可用支付方式", response_model=BaseResponse[ListData[PaymentMethodRes]])
async def get_payment_methods():
    return ResponseHelper.success(EpayUtils.get_payment_methods(config.payment, config.epay))
