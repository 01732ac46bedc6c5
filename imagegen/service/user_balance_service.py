from decimal import Decimal
from typing import Optional

from tortoise.transactions import atomic

from imagegen.common.base import BaseService
from imagegen.common.exception.exception import InsufficientBalanceException, ValidationException
from imagegen.common.models import UserBalance
from imagegen.core.logger_util import logger

ZERO = Decimal("0.00")


def _to_amount(amount) -> Decimal:
    return Decimal(str(amount)).quantize(Decimal("0.01"))


class UserBalanceService(BaseService[UserBalance]):
    """
    用户余额service
    所有修改都在事务中先对余额行加行锁（SELECT ... FOR UPDATE）再读改写，
    防止同一用户的并发充值/扣款互相覆盖
    """

    async def get_by_user_id(self, user_id: int) -> Optional[UserBalance]:
        return await self.get_one(user_id=user_id)

    async def ensure_balance(self, user_id: int) -> UserBalance:
        """
        获取用户余额，不存在则创建一条零余额记录
        """
        balance, created = await self.model_class.get_or_create(user_id=user_id)
        if created:
            logger.info(f"✅ 创建用户余额记录，用户 {user_id}")
        return balance

    async def get_for_update(self, user_id: int) -> UserBalance:
        """
        锁定用户余额行，必须在事务中调用
        """
        balance = await self.query(user_id=user_id).select_for_update().get_or_none()
        if balance is None:
            await self.ensure_balance(user_id)
            balance = await self.query(user_id=user_id).select_for_update().get()
        return balance

    @staticmethod
    async def _save(balance: UserBalance):
        await balance.save(update_fields=["balance", "total_recharged", "total_consumed", "updated_at"])

    @atomic()
    async def credit(self, user_id: int, amount) -> UserBalance:
        """
        充值入账：balance += amount，total_recharged += amount
        """
        amount = _to_amount(amount)
        if amount <= ZERO:
            raise ValidationException("入账金额必须大于0")

        balance = await self.get_for_update(user_id)
        balance.balance += amount
        balance.total_recharged += amount
        await self._save(balance)
        logger.info(f"✅ 用户 {user_id} 余额入账 {amount}，当前余额 {balance.balance}")
        return balance

    @atomic()
    async def debit(self, user_id: int, amount) -> UserBalance:
        """
        余额扣款：balance -= amount，total_consumed += amount
        加锁后重新校验余额，不足时抛出 InsufficientBalanceException
        """
        amount = _to_amount(amount)
        if amount <= ZERO:
            raise ValidationException("扣款金额必须大于0")

        balance = await self.get_for_update(user_id)
        if balance.balance < amount:
            raise InsufficientBalanceException(balance.balance, amount)

        balance.balance -= amount
        balance.total_consumed += amount
        await self._save(balance)
        logger.info(f"✅ 用户 {user_id} 余额扣款 {amount}，剩余余额 {balance.balance}")
        return balance

    @atomic()
    async def record_consumption(self, user_id: int, amount) -> UserBalance:
        """
        记录一笔已到账款项的即时消费（网关购买套餐）：balance -= amount，total_consumed += amount
        不校验余额是否充足，退款后余额为负时也必须入账成功
        """
        amount = _to_amount(amount)
        if amount <= ZERO:
            raise ValidationException("消费金额必须大于0")

        balance = await self.get_for_update(user_id)
        balance.balance -= amount
        balance.total_consumed += amount
        await self._save(balance)
        logger.info(f"✅ 用户 {user_id} 记录消费 {amount}，当前余额 {balance.balance}")
        return balance

    @atomic()
    async def update_user_balance(self, user_id: int, amount) -> UserBalance:
        """
        按符号调整余额：
        - 正数视为充值，累加 total_recharged
        - 负数视为消费，累加 total_consumed，余额最低扣到 0
        """
        amount = _to_amount(amount)
        balance = await self.get_for_update(user_id)
        if amount > ZERO:
            balance.balance += amount
            balance.total_recharged += amount
        elif amount < ZERO:
            consumed = -amount
            balance.balance = max(balance.balance - consumed, ZERO)
            balance.total_consumed += consumed
        else:
            return balance

        await self._save(balance)
        logger.info(f"✅ 用户 {user_id} 余额调整 {amount}，当前余额 {balance.balance}")
        return balance

    @atomic()
    async def revert_recharge(self, user_id: int, amount) -> UserBalance:
        """
        撤销一笔充值（退款）：balance -= amount，total_recharged -= amount
        余额允许变为负数
        """
        amount = _to_amount(amount)
        balance = await self.get_for_update(user_id)
        balance.balance -= amount
        balance.total_recharged -= amount
        await self._save(balance)
        if balance.balance < ZERO:
            logger.warning(f"⚠️ 用户 {user_id} 退款后余额为负: {balance.balance}")
        logger.info(f"✅ 用户 {user_id} 撤销充值 {amount}，当前余额 {balance.balance}")
        return balance

    @atomic()
    async def revert_consumption(self, user_id: int, amount) -> UserBalance:
        """
        撤销一笔余额消费（余额支付退款或补偿）：balance += amount，total_consumed -= amount
        """
        amount = _to_amount(amount)
        balance = await self.get_for_update(user_id)
        balance.balance += amount
        balance.total_consumed = max(balance.total_consumed - amount, ZERO)
        await self._save(balance)
        logger.info(f"✅ 用户 {user_id} 退回余额消费 {amount}，当前余额 {balance.balance}")
        return balance


user_balance_service = UserBalanceService()
