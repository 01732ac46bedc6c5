from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from tortoise.expressions import Q
from tortoise.transactions import atomic

from imagegen.common.base import BaseService
from imagegen.common.config import config
from imagegen.common.exception.exception import NotFoundException, ValidationException
from imagegen.common.models import Package, User, UserPackage, UserPackageStatus
from imagegen.common.utils import DateUtils
from imagegen.core.logger_util import logger
from imagegen.service.membership_service import MembershipService, membership_service


class EntitlementService(BaseService[UserPackage]):
    """
    使用次数（用户套餐）service

    - 可用次数：状态为 active、剩余次数 > 0、且未过期（expires_at 为空表示永不过期）的套餐剩余次数之和
    - 扣减次数：按过期时间升序（永不过期的排最后）依次扣减，次数不足时不做任何扣减
    - 过期不做定时扫描，查询时按 expires_at 过滤
    """

    FREE_CREDITS_NAME = "新用户免费次数"
    ADMIN_GRANT_NAME = "管理员赠送"

    def __init__(self, membership: MembershipService):
        self.membership = membership

    def _valid_query(self, user_id: int, now: datetime):
        return self.query(
            user_id=user_id,
            status=UserPackageStatus.ACTIVE,
            times_remaining__gt=0,
        ).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))

    @staticmethod
    def _consume_order(user_package: UserPackage):
        # 先过期的先用，永不过期的最后用
        expires_at = DateUtils.to_naive(user_package.expires_at)
        return (
            expires_at is None,
            expires_at or datetime.max,
            user_package.id,
        )

    async def get_available_times(self, user_id: int) -> int:
        remaining = await self._valid_query(user_id, DateUtils.now()).values_list("times_remaining", flat=True)
        return int(sum(remaining))

    async def get_active_packages(self, user_id: int, for_update: bool = False) -> List[UserPackage]:
        """
        当前可用的套餐，按扣减顺序排列
        :param for_update: 是否加行锁，必须在事务中使用
        """
        query = self._valid_query(user_id, DateUtils.now())
        if for_update:
            query = query.select_for_update()
        user_packages = await query.all()
        return sorted(user_packages, key=self._consume_order)

    @atomic()
    async def use_package_times(self, user_id: int, times: int = 1) -> bool:
        """
        扣减使用次数
        :return: 是否扣减成功，可用次数不足时返回 False 且不扣减任何套餐
        """
        if times <= 0:
            raise ValidationException("扣减次数必须大于0")

        user_packages = await self.get_active_packages(user_id, for_update=True)
        available = sum(up.times_remaining for up in user_packages)
        if available < times:
            logger.warning(f"⚠️ 用户 {user_id} 可用次数不足，需要 {times}，可用 {available}")
            return False

        remaining_needed = times
        for user_package in user_packages:
            if remaining_needed <= 0:
                break
            deducted = min(remaining_needed, user_package.times_remaining)
            user_package.times_used += deducted
            user_package.times_remaining -= deducted
            if user_package.times_remaining == 0:
                user_package.status = UserPackageStatus.EXHAUSTED
            await user_package.save(update_fields=["times_used", "times_remaining", "status", "updated_at"])
            remaining_needed -= deducted
            logger.info(
                f"✅ 用户 {user_id} 套餐 {user_package.id} 扣减 {deducted} 次，剩余 {user_package.times_remaining} 次")

        return True

    async def deduct_after_generation(self, user_id: int, times: int = 1) -> bool:
        """
        生成成功后扣减次数，扣减失败只记录警告，不回滚已完成的生成
        """
        success = await self.use_package_times(user_id, times)
        if not success:
            logger.warning(f"⚠️ 用户 {user_id} 生成完成后扣减 {times} 次失败")
        return success

    async def grant(
            self,
            user_id: int,
            package_name: str,
            times_total: int,
            price: Decimal = Decimal("0.00"),
            validity_days: Optional[int] = None,
            never_expires: bool = False,
            package_id: Optional[int] = None,
            recharge_id: Optional[int] = None,
    ) -> UserPackage:
        """
        新增一条使用次数授予记录
        :param validity_days: 有效天数，never_expires 为 True 时忽略
        """
        if times_total <= 0:
            raise ValidationException("授予次数必须大于0")
        if never_expires:
            expires_at = None
        elif validity_days is None or validity_days <= 0:
            raise ValidationException("有效天数必须大于0")
        else:
            expires_at = DateUtils.now() + timedelta(days=validity_days)

        user_package = await self.model_class.create(
            user_id=user_id,
            package_id=package_id,
            package_name=package_name,
            times_total=times_total,
            times_used=0,
            times_remaining=times_total,
            price=price,
            expires_at=expires_at,
            status=UserPackageStatus.ACTIVE,
            recharge_id=recharge_id,
        )
        logger.info(f"✅ 用户 {user_id} 获得 {package_name} {times_total} 次，过期时间 {expires_at or '永不过期'}")
        return user_package

    async def grant_new_user_free_credits(self, user_id: int) -> Optional[UserPackage]:
        credit_config = config.credit
        if credit_config.new_user_free_credits <= 0:
            return None
        return await self.grant(
            user_id=user_id,
            package_name=self.FREE_CREDITS_NAME,
            times_total=credit_config.new_user_free_credits,
            validity_days=credit_config.free_credits_expiry_days,
            never_expires=credit_config.free_credits_never_expire,
        )

    @atomic()
    async def set_admin_granted_times(self, user_id: int, times: int) -> Optional[UserPackage]:
        """
        管理员设置赠送次数：删除该用户之前的管理员赠送记录，再按新次数重新赠送
        times 为 0 时只删除
        """
        if times < 0:
            raise ValidationException("赠送次数不能为负数")
        if not await User.filter(id=user_id).exists():
            raise NotFoundException("用户不存在")

        removed = await self.query(
            user_id=user_id,
            package_id__isnull=True,
            package_name=self.ADMIN_GRANT_NAME,
        ).delete()
        if removed:
            logger.info(f"用户 {user_id} 删除旧的管理员赠送记录 {removed} 条")

        if times == 0:
            return None
        return await self.grant(
            user_id=user_id,
            package_name=self.ADMIN_GRANT_NAME,
            times_total=times,
            validity_days=config.credit.admin_grant_validity_days,
        )

    @atomic()
    async def purchase_package(
            self,
            user_id: int,
            package: Package,
            price: Optional[Decimal] = None,
            recharge_id: Optional[int] = None,
    ) -> UserPackage:
        """
        购买套餐：发放套餐次数并延长会员有效期（同一事务）
        """
        if not package.is_active:
            raise ValidationException("套餐已下架")

        user_package = await self.grant(
            user_id=user_id,
            package_name=package.name,
            times_total=package.usage_count,
            price=package.price if price is None else price,
            validity_days=package.validity_days,
            package_id=package.id,
            recharge_id=recharge_id,
        )
        await self.membership.extend_membership(user_id, user_package.expires_at)
        return user_package

    async def get_user_packages(self, user_id: int) -> List[Dict[str, Any]]:
        """
        用户全部套餐记录（新的在前），状态为查询时计算的有效状态
        """
        now = DateUtils.now()
        user_packages = await self.list(filters={"user_id": user_id}, order_by=["-created_at", "-id"])
        result = []
        for user_package in user_packages:
            data = user_package.to_dict()
            if (user_package.status == UserPackageStatus.ACTIVE
                    and user_package.expires_at is not None
                    and DateUtils.to_naive(user_package.expires_at) <= now):
                data["status"] = UserPackageStatus.EXPIRED.value
            result.append(data)
        return result

    async def get_member_info(self, user_id: int) -> Dict[str, Any]:
        is_member, member_expires_at = await self.membership.get_membership(user_id)
        return {
            "is_member": is_member,
            "member_expires_at": member_expires_at,
            "available_times": await self.get_available_times(user_id),
        }


entitlement_service = EntitlementService(membership_service)
