from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from tortoise.functions import Count, Sum
from tortoise.transactions import atomic

from imagegen.common.base import BaseService
from imagegen.common.config import config
from imagegen.common.exception.exception import (
    HttpBusinessException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import PaymentMethod, RechargeRecord, RechargeStatus
from imagegen.common.schema import PaymentMethodStats, RechargeChartPoint, RechargeStats
from imagegen.common.utils import DateUtils, EpayUtils, ValidationUtils
from imagegen.core.logger_util import logger
from imagegen.service.payment_success_service import PaymentSuccessService, payment_success_service
from imagegen.service.user_balance_service import UserBalanceService, user_balance_service

ZERO = Decimal("0.00")


def _to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class RechargeService(BaseService[RechargeRecord]):
    """
    充值记录（支付单）service

    状态机：pending -> completed | failed，completed -> refunded
    状态变更一律使用带原状态条件的 UPDATE，只有真正改到行的那次调用才会入账，
    重复的支付回调不会重复入账
    """
    not_found_message = "充值记录不存在"

    def __init__(self, balance_service: UserBalanceService, success_service: PaymentSuccessService):
        self.balance_service = balance_service
        self.success_service = success_service

    async def create_recharge(
            self,
            user_id: int,
            amount,
            payment_method: PaymentMethod,
            package_id: Optional[int] = None,
            out_trade_no: Optional[str] = None,
            status: RechargeStatus = RechargeStatus.PENDING,
    ) -> RechargeRecord:
        """
        创建充值记录，此时不产生任何入账
        :param status: 网关支付为 pending，余额支付直接为 completed
        """
        try:
            amount = ValidationUtils.validate_amount(amount, max_amount=config.payment.max_amount)
        except ValueError as e:
            raise ValidationException(str(e))
        if status not in (RechargeStatus.PENDING, RechargeStatus.COMPLETED):
            raise ValidationException("充值记录只能以待支付或已完成状态创建")

        now = DateUtils.now()
        record = await self.model_class.create(
            user_id=user_id,
            amount=amount,
            payment_method=payment_method,
            out_trade_no=out_trade_no or EpayUtils.generate_order_no(),
            package_id=package_id,
            status=status,
            paid_at=now if status == RechargeStatus.COMPLETED else None,
            expire_time=now + timedelta(minutes=config.recharge.expire_minutes)
            if status == RechargeStatus.PENDING else None,
        )
        logger.info(f"创建充值记录 - ID: {record.id}, 订单号: {record.out_trade_no}, 用户: {user_id}, "
                    f"金额: {amount}, 方式: {payment_method.value}, 状态: {status.value}")
        return record

    async def get_by_out_trade_no(self, out_trade_no: str) -> Optional[RechargeRecord]:
        return await self.get_one(out_trade_no=out_trade_no)

    async def get_user_pending_recharge(self, recharge_id: int, user_id: int) -> RechargeRecord:
        """
        获取用户自己的待支付记录，用于重新发起支付
        """
        record = await self.get_one(id=recharge_id, user_id=user_id)
        if not record:
            raise NotFoundException("充值记录不存在")
        if record.status != RechargeStatus.PENDING:
            raise StateConflictException("充值记录不是待支付状态")
        return record

    async def get_user_recharge(self, recharge_id: int, user_id: int) -> RechargeRecord:
        """
        用户查看自己的充值记录详情，不是本人的记录返回无权访问
        """
        record = await self.get_or_raise(recharge_id)
        if record.user_id != user_id:
            raise HttpBusinessException(HttpErrorCodeEnum.FORBIDDEN, "无权访问此记录")
        return record

    @atomic()
    async def confirm_recharge(
            self,
            recharge_id: int,
            status: RechargeStatus,
            transaction_id: Optional[str] = None,
    ) -> bool:
        """
        确认充值结果
        :return: True 表示本次调用完成了状态变更（completed 时已入账）；
                 False 表示记录已经处于目标状态，本次为重复确认，未做任何修改
        :raises StateConflictException: 记录处于其他终态，不允许变更
        """
        if status not in (RechargeStatus.COMPLETED, RechargeStatus.FAILED):
            raise ValidationException("充值记录只能确认为已完成或失败")

        await self.get_or_raise(recharge_id)
        data = {"status": status}
        if status == RechargeStatus.COMPLETED:
            data["paid_at"] = DateUtils.now()
            if transaction_id:
                data["transaction_id"] = transaction_id

        if not await self.transition(recharge_id, RechargeStatus.PENDING, **data):
            current = await self.get_or_raise(recharge_id)
            if current.status == status:
                logger.warning(f"⚠️ 充值记录 {recharge_id} 已是 {status.value} 状态，忽略重复确认")
                return False
            if current.status == RechargeStatus.FAILED and status == RechargeStatus.COMPLETED:
                logger.error(f"❌ 充值记录 {recharge_id} 已关闭，收到迟到的支付成功通知，需要人工处理")
            raise StateConflictException(f"充值记录状态为 {current.status.value}，不能变更为 {status.value}")

        if status == RechargeStatus.COMPLETED:
            record = await self.get_or_raise(recharge_id)
            await self.success_service.on_payment_success(record)
        logger.info(f"✅ 充值记录 {recharge_id} 状态变更为 {status.value}")
        return True

    async def confirm_by_out_trade_no(self, out_trade_no: str, trade_no: Optional[str], money: str) -> bool:
        """
        支付网关通知支付成功
        通知金额必须与充值记录金额一致
        """
        record = await self.get_by_out_trade_no(out_trade_no)
        if not record:
            logger.error(f"❌ 支付通知对应的充值记录不存在 - 订单号: {out_trade_no}")
            return False

        try:
            paid_amount = Decimal(str(money)).quantize(Decimal("0.01"))
        except (InvalidOperation, ValueError):
            raise ValidationException(f"支付金额格式不正确: {money}")
        if paid_amount != record.amount:
            logger.error(f"❌ 支付金额不一致 - 订单号: {out_trade_no}, 通知金额: {money}, 订单金额: {record.amount}")
            raise ValidationException("支付金额与订单金额不一致")

        return await self.confirm_recharge(record.id, RechargeStatus.COMPLETED, trade_no)

    @atomic()
    async def refund(self, recharge_id: int, reason: str) -> RechargeRecord:
        """
        退款：completed -> refunded，并在同一事务中回退余额
        - 网关充值：余额和累计充值同时减少，余额允许变为负数
        - 余额支付：金额退回余额，累计消费减少，与网关充值的退款方向相反，余额增加而不是减少
        已发放的套餐次数不收回
        """
        record = await self.get_or_raise(recharge_id)
        refunded = await self.transition(
            recharge_id,
            RechargeStatus.COMPLETED,
            status=RechargeStatus.REFUNDED,
            refunded_at=DateUtils.now(),
            refund_reason=reason,
        )
        if not refunded:
            current = await self.get_or_raise(recharge_id)
            raise StateConflictException(f"只有已完成的充值记录可以退款，当前状态: {current.status.value}")

        if record.payment_method == PaymentMethod.BALANCE:
            await self.balance_service.revert_consumption(record.user_id, record.amount)
        else:
            await self.balance_service.revert_recharge(record.user_id, record.amount)
        logger.info(f"✅ 充值记录 {recharge_id} 退款成功，金额: {record.amount}，原因: {reason}")
        return await self.get_or_raise(recharge_id)

    @atomic()
    async def manual_recharge(self, user_id: int, amount, remark: Optional[str] = None) -> RechargeRecord:
        """
        后台手动充值：直接生成已完成的记录并入账
        """
        record = await self.create_recharge(user_id, amount, PaymentMethod.MANUAL, status=RechargeStatus.COMPLETED)
        await self.balance_service.credit(user_id, record.amount)
        logger.info(f"✅ 管理员手动充值 - 用户: {user_id}, 金额: {record.amount}, 备注: {remark or '-'}")
        return record

    async def close_expired_recharge(self, recharge_id: int) -> bool:
        """
        关闭超时未支付的充值记录：pending -> failed，已经是其他状态则忽略
        """
        closed = await self.transition(recharge_id, RechargeStatus.PENDING, status=RechargeStatus.FAILED)
        if closed:
            logger.info(f"✅ 充值记录 {recharge_id} 超时未支付，已关闭")
        else:
            logger.info(f"充值记录 {recharge_id} 不是待支付状态，无需关闭")
        return closed

    async def _count_and_revenue_by_status(self, **filters) -> dict:
        """
        按状态分组统计订单数和金额
        :return: {RechargeStatus: (count, amount)}
        """
        rows = await (
            self.query(**filters)
            .annotate(count=Count("id"), total=Sum("amount"))
            .group_by("status")
            .values("status", "count", "total")
        )
        return {RechargeStatus(row["status"]): (row["count"], _to_money(row["total"])) for row in rows}

    async def get_recharge_stats(self) -> RechargeStats:
        now = DateUtils.now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start = today_start.replace(day=1)

        overall = await self._count_and_revenue_by_status()
        today = await self._count_and_revenue_by_status(created_at__gte=today_start)
        month = await self._count_and_revenue_by_status(created_at__gte=month_start)

        def revenue(grouped: dict) -> Decimal:
            return grouped.get(RechargeStatus.COMPLETED, (0, ZERO))[1]

        def orders(grouped: dict, status: Optional[RechargeStatus] = None) -> int:
            if status is None:
                return sum(count for count, _ in grouped.values())
            return grouped.get(status, (0, ZERO))[0]

        completed = orders(overall, RechargeStatus.COMPLETED)
        return RechargeStats(
            total_revenue=revenue(overall),
            today_revenue=revenue(today),
            month_revenue=revenue(month),
            total_orders=orders(overall),
            today_orders=orders(today),
            month_orders=orders(month),
            pending_orders=orders(overall, RechargeStatus.PENDING),
            completed_orders=completed,
            failed_orders=orders(overall, RechargeStatus.FAILED),
            refunded_orders=orders(overall, RechargeStatus.REFUNDED),
            avg_order_amount=_to_money(revenue(overall) / completed) if completed else ZERO,
        )

    async def get_chart_data(self, days: int = 30) -> List[RechargeChartPoint]:
        """
        最近 days 天每日的收入和订单数，按日期升序，没有订单的日期不返回
        按日期分组在内存中完成，MySQL 和 sqlite 的日期函数不通用
        """
        start = DateUtils.now().replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=days)
        rows = await self.query(created_at__gte=start).values_list("created_at", "status", "amount")

        points: Dict[date, RechargeChartPoint] = {}
        for created_at, status, amount in rows:
            day = DateUtils.to_naive(created_at).date()
            point = points.setdefault(day, RechargeChartPoint(date=day, revenue=ZERO, orders=0))
            point.orders += 1
            if RechargeStatus(status) == RechargeStatus.COMPLETED:
                point.revenue += _to_money(amount)
        return [points[day] for day in sorted(points)]

    async def get_payment_method_stats(self) -> List[PaymentMethodStats]:
        """
        按支付方式统计订单数和已完成金额，按金额倒序
        """
        counts = await (
            self.query()
            .annotate(count=Count("id"))
            .group_by("payment_method")
            .values("payment_method", "count")
        )
        revenues = await (
            self.query(status=RechargeStatus.COMPLETED)
            .annotate(total=Sum("amount"))
            .group_by("payment_method")
            .values("payment_method", "total")
        )
        revenue_by_method = {PaymentMethod(row["payment_method"]): _to_money(row["total"]) for row in revenues}

        stats = [
            PaymentMethodStats(
                payment_method=PaymentMethod(row["payment_method"]).value,
                count=row["count"],
                revenue=revenue_by_method.get(PaymentMethod(row["payment_method"]), ZERO),
            )
            for row in counts
        ]
        stats.sort(key=lambda item: item.revenue, reverse=True)
        return stats


recharge_service = RechargeService(user_balance_service, payment_success_service)
