from imagegen.common.models import RechargeRecord
from imagegen.core.logger_util import logger
from imagegen.service.entitlement_service import entitlement_service
from imagegen.service.payment_success_service.package_handler import PackageHandler
from imagegen.service.payment_success_service.payment_success_handler import PaymentSuccessHandler
from imagegen.service.payment_success_service.recharge_handler import RechargeHandler
from imagegen.service.user_balance_service import user_balance_service


class PaymentSuccessService:
    """
    支付成功业务处理服务
    充值记录转为 completed 后，根据是否关联套餐选择处理器入账
    """

    def __init__(self, recharge_handler: PaymentSuccessHandler, package_handler: PaymentSuccessHandler):
        self._handlers = {
            "recharge": recharge_handler,
            "package": package_handler,
        }

    async def on_payment_success(self, record: RechargeRecord):
        """
        必须在确认充值记录的事务中调用，处理失败直接抛出让事务回滚
        """
        handler = self._handlers["package" if record.package_id else "recharge"]
        logger.info(f"开始处理支付成功业务 - 订单号: {record.out_trade_no}, 金额: {record.amount}")
        try:
            await handler.handle(record)
        except Exception as e:
            logger.exception(f"❌ 处理支付成功业务异常 - 订单号: {record.out_trade_no}, 错误: {e}")
            raise
        logger.info(f"✅ 支付成功业务处理完成 - 订单号: {record.out_trade_no}")


payment_success_service = PaymentSuccessService(
    RechargeHandler(user_balance_service),
    PackageHandler(user_balance_service, entitlement_service),
)
