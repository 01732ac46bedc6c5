from imagegen.common.models import Package, RechargeRecord
from imagegen.core.logger_util import logger
from imagegen.service.entitlement_service import EntitlementService
from imagegen.service.payment_success_service.payment_success_handler import PaymentSuccessHandler
from imagegen.service.user_balance_service import UserBalanceService


class PackageHandler(PaymentSuccessHandler):
    """
    套餐购买：
    先把支付金额记为一笔充值，再立即作为消费扣除（余额不变，累计充值和累计消费同时增加），
    然后发放套餐次数并延长会员
    """

    def __init__(self, balance_service: UserBalanceService, entitlement: EntitlementService):
        self.balance_service = balance_service
        self.entitlement = entitlement

    async def handle(self, record: RechargeRecord):
        package = await Package.filter(id=record.package_id).get_or_none()
        await self.balance_service.credit(record.user_id, record.amount)

        if not package or not package.is_active:
            # 套餐在支付期间被删除或下架，钱按充值处理留在余额中
            logger.warning(f"⚠️ 套餐 {record.package_id} 不存在或已下架，订单 {record.out_trade_no} 按充值处理")
            return

        await self.balance_service.record_consumption(record.user_id, record.amount)
        user_package = await self.entitlement.purchase_package(
            record.user_id,
            package,
            price=record.amount,
            recharge_id=record.id,
        )
        logger.info(
            f"套餐购买处理完成 - 订单号: {record.out_trade_no}, 用户: {record.user_id}, "
            f"套餐: {package.name}, 次数: {user_package.times_total}")
