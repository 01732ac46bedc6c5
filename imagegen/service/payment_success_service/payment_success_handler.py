from abc import ABC, abstractmethod

from imagegen.common.models import RechargeRecord


class PaymentSuccessHandler(ABC):
    """
    支付成功处理接口
    在确认充值记录的同一事务中被调用，抛出异常会回滚整个确认过程
    """

    @abstractmethod
    async def handle(self, record: RechargeRecord):
        """
        处理支付成功业务逻辑

        :param record: 已经转为 completed 的充值记录
        """
