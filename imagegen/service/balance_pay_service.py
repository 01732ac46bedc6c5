from decimal import Decimal
from typing import Any, Dict, Optional

from tortoise.transactions import in_transaction

from imagegen.common.config import config
from imagegen.common.exception.exception import (
    HttpBusinessException,
    InsufficientBalanceException,
    StateConflictException,
    ValidationException,
)
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import PaymentMethod, RechargeRecord, RechargeStatus
from imagegen.common.utils import DateUtils, ValidationUtils
from imagegen.core.logger_util import logger
from imagegen.service.entitlement_service import EntitlementService, entitlement_service
from imagegen.service.package_service import PackageService, package_service
from imagegen.service.recharge_service import RechargeService, recharge_service
from imagegen.service.user_balance_service import UserBalanceService, user_balance_service


class BalancePayService:
    """
    余额支付service

    分两步执行：
    1. 事务内锁定余额行、校验余额、生成已完成的支付记录并扣款
    2. 发放套餐次数并延长会员；失败时补偿：退回扣款并把支付记录标记为已退款，然后抛出原异常
    补偿是尽力而为的，不是两阶段提交
    """

    COMPENSATION_REASON = "套餐发放失败，余额自动退回"

    def __init__(self, balance_service: UserBalanceService, recharge: RechargeService,
                 entitlement: EntitlementService, packages: PackageService):
        self.balance_service = balance_service
        self.recharge = recharge
        self.entitlement = entitlement
        self.packages = packages

    async def pay(
            self,
            user_id: int,
            amount,
            package_id: Optional[int] = None,
            recharge_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        余额支付
        :param recharge_id: 已存在的待支付记录，改为余额支付并直接完成
        :return: {transaction_id, amount, recharge_id, remaining_balance}
        :raises InsufficientBalanceException: 余额不足，不会生成任何记录
        """
        if not config.payment.balance_enabled:
            raise HttpBusinessException(HttpErrorCodeEnum.PAYMENT_DISABLED, "余额支付未开启")
        try:
            amount = ValidationUtils.validate_amount(amount, max_amount=config.payment.max_amount)
        except ValueError as e:
            raise ValidationException(str(e))

        package = await self.packages.get_purchasable(package_id, amount) if package_id else None

        async with in_transaction():
            balance = await self.balance_service.get_for_update(user_id)
            if balance.balance < amount:
                logger.warning(f"⚠️ 用户 {user_id} 余额不足，余额: {balance.balance}，需要: {amount}")
                raise InsufficientBalanceException(balance.balance, amount)

            if recharge_id:
                record = await self._complete_pending(recharge_id, user_id, amount, package_id)
            else:
                record = await self.recharge.create_recharge(
                    user_id, amount, PaymentMethod.BALANCE,
                    package_id=package_id,
                    status=RechargeStatus.COMPLETED,
                )
            balance = await self.balance_service.debit(user_id, amount)

        if package:
            try:
                await self.entitlement.purchase_package(user_id, package, price=amount, recharge_id=record.id)
            except Exception as e:
                logger.warning(f"⚠️ 余额已扣款但套餐发放失败，存在数据不一致风险，开始补偿 - "
                               f"用户: {user_id}, 支付记录: {record.id}, 错误: {e}")
                await self._compensate(record)
                raise

        logger.info(f"✅ 余额支付成功 - 用户: {user_id}, 金额: {amount}, 订单号: {record.out_trade_no}")
        return {
            "transaction_id": record.out_trade_no,
            "amount": amount,
            "recharge_id": record.id,
            "remaining_balance": balance.balance,
        }

    async def _complete_pending(self, recharge_id: int, user_id: int, amount: Decimal,
                                package_id: Optional[int]) -> RechargeRecord:
        record = await self.recharge.get_user_pending_recharge(recharge_id, user_id)
        if record.amount != amount or record.package_id != package_id:
            raise ValidationException("支付金额或套餐与待支付记录不一致")

        completed = await self.recharge.transition(
            recharge_id,
            RechargeStatus.PENDING,
            status=RechargeStatus.COMPLETED,
            payment_method=PaymentMethod.BALANCE,
            paid_at=DateUtils.now(),
        )
        if not completed:
            raise StateConflictException("充值记录不是待支付状态")
        return await self.recharge.get_or_raise(recharge_id)

    async def _compensate(self, record: RechargeRecord):
        try:
            async with in_transaction():
                await self.balance_service.revert_consumption(record.user_id, record.amount)
                await self.recharge.transition(
                    record.id,
                    RechargeStatus.COMPLETED,
                    status=RechargeStatus.REFUNDED,
                    refunded_at=DateUtils.now(),
                    refund_reason=self.COMPENSATION_REASON,
                )
            logger.info(f"✅ 余额支付补偿完成 - 支付记录: {record.id}, 退回金额: {record.amount}")
        except Exception as e:
            logger.exception(f"❌ 余额支付补偿失败，需要人工处理 - 支付记录: {record.id}, 错误: {e}")


balance_pay_service = BalancePayService(user_balance_service, recharge_service, entitlement_service, package_service)
