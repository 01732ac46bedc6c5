from imagegen.common.models import RechargeRecord
from imagegen.core.logger_util import logger
from imagegen.service.payment_success_service.payment_success_handler import PaymentSuccessHandler
from imagegen.service.user_balance_service import UserBalanceService


class RechargeHandler(PaymentSuccessHandler):
    """
    纯充值：金额入账到用户余额
    """

    def __init__(self, balance_service: UserBalanceService):
        self.balance_service = balance_service

    async def handle(self, record: RechargeRecord):
        balance = await self.balance_service.credit(record.user_id, record.amount)
        logger.info(f"充值入账完成 - 订单号: {record.out_trade_no}, 用户: {record.user_id}, 余额: {balance.balance}")
