import math
from datetime import datetime, timedelta
from typing import Optional, Tuple

from tortoise.transactions import atomic

from imagegen.common.base import BaseService
from imagegen.common.exception.exception import NotFoundException, ValidationException
from imagegen.common.models import User
from imagegen.common.utils import DateUtils
from imagegen.core.logger_util import logger

SECONDS_PER_DAY = 24 * 3600


class MembershipService(BaseService[User]):
    """
    会员有效期service

    延长规则：如果当前会员未过期，把新套餐的有效天数（向上取整）叠加到现有到期时间上；
    否则直接使用新套餐的到期时间
    """
    not_found_message = "用户不存在"

    @staticmethod
    def stack_expiry(current_expires_at: Optional[datetime], new_expiry: datetime,
                     now: Optional[datetime] = None) -> datetime:
        now = now or DateUtils.now()
        current_expires_at = DateUtils.to_naive(current_expires_at)
        if current_expires_at and current_expires_at > now:
            extra_days = math.ceil((new_expiry - now).total_seconds() / SECONDS_PER_DAY)
            return current_expires_at + timedelta(days=extra_days)
        return new_expiry

    @atomic()
    async def extend_membership(self, user_id: int, new_expiry: datetime) -> datetime:
        """
        延长用户会员有效期
        :param user_id: 用户ID
        :param new_expiry: 本次购买的套餐到期时间
        :return: 延长后的会员到期时间
        """
        if new_expiry is None:
            raise ValidationException("会员到期时间不能为空")

        user = await self.query(id=user_id).select_for_update().get_or_none()
        if not user:
            raise NotFoundException("用户不存在")

        expires_at = self.stack_expiry(user.member_expires_at, new_expiry)
        user.is_member = True
        user.member_expires_at = expires_at
        await user.save(update_fields=["is_member", "member_expires_at", "updated_at"])
        logger.info(f"✅ 用户 {user_id} 会员有效期延长至 {expires_at}")
        return expires_at

    async def get_membership(self, user_id: int) -> Tuple[bool, Optional[datetime]]:
        """
        查询会员状态，读取时发现已过期则顺带关闭会员标记
        :return: (是否会员, 会员到期时间)
        """
        user = await self.get_or_raise(user_id)

        if user.is_member and user.member_expires_at and DateUtils.to_naive(user.member_expires_at) <= DateUtils.now():
            await self.update({"id": user_id, "is_member": True}, {"is_member": False})
            logger.info(f"用户 {user_id} 会员已过期，更新会员状态")
            return False, None

        return user.is_member, user.member_expires_at


membership_service = MembershipService()
