from datetime import timedelta
from decimal import Decimal

import pytest

from imagegen.common.exception.exception import NotFoundException, ValidationException
from imagegen.common.models import UserPackage, UserPackageStatus
from imagegen.common.utils import DateUtils
from imagegen.service.entitlement_service import entitlement_service


async def _grant(user_id, times, days=None, **kwargs):
    return await entitlement_service.grant(
        user_id=user_id,
        package_name=kwargs.pop("package_name", "测试套餐"),
        times_total=times,
        validity_days=days,
        never_expires=days is None,
        **kwargs,
    )


async def _refresh(user_package: UserPackage) -> UserPackage:
    return await UserPackage.get(id=user_package.id)


def _assert_counts_consistent(user_package: UserPackage):
    assert user_package.times_remaining == user_package.times_total - user_package.times_used
    assert user_package.times_remaining >= 0


async def test_available_times_sums_valid_grants(user):
    await _grant(user.id, 3, days=10)
    await _grant(user.id, 5)

    assert await entitlement_service.get_available_times(user.id) == 8


async def test_available_times_excludes_expired_exhausted_and_inactive(user):
    valid = await _grant(user.id, 2, days=10)
    expired = await _grant(user.id, 4, days=10)
    await UserPackage.filter(id=expired.id).update(expires_at=DateUtils.now() - timedelta(seconds=1))
    exhausted = await _grant(user.id, 6, days=10)
    await UserPackage.filter(id=exhausted.id).update(
        times_used=6, times_remaining=0, status=UserPackageStatus.EXHAUSTED)

    assert await entitlement_service.get_available_times(user.id) == valid.times_remaining


async def test_non_active_grant_with_remaining_times_is_ignored(user):
    valid = await _grant(user.id, 2, days=10)
    marked_expired = await _grant(user.id, 5, days=10)
    await UserPackage.filter(id=marked_expired.id).update(status=UserPackageStatus.EXPIRED)

    assert await entitlement_service.get_available_times(user.id) == 2
    assert await entitlement_service.use_package_times(user.id, 3) is False
    assert await entitlement_service.use_package_times(user.id, 2) is True

    marked_expired = await _refresh(marked_expired)
    assert marked_expired.times_remaining == 5
    assert marked_expired.times_used == 0
    assert (await _refresh(valid)).times_remaining == 0


async def test_consume_earliest_expiring_first(user):
    first = await _grant(user.id, 3, days=5)
    second = await _grant(user.id, 5, days=20)

    assert await entitlement_service.use_package_times(user.id, 4) is True

    first, second = await _refresh(first), await _refresh(second)
    assert first.times_remaining == 0
    assert first.status == UserPackageStatus.EXHAUSTED
    assert second.times_remaining == 4
    assert second.times_used == 1
    for user_package in (first, second):
        _assert_counts_consistent(user_package)


async def test_consume_never_expiring_grants_last(user):
    forever = await _grant(user.id, 5)
    soon = await _grant(user.id, 2, days=3)

    assert await entitlement_service.use_package_times(user.id, 2) is True

    assert (await _refresh(soon)).times_remaining == 0
    assert (await _refresh(forever)).times_remaining == 5


async def test_consume_insufficient_deducts_nothing(user):
    first = await _grant(user.id, 1, days=5)
    second = await _grant(user.id, 2, days=10)

    assert await entitlement_service.use_package_times(user.id, 4) is False

    assert (await _refresh(first)).times_remaining == 1
    assert (await _refresh(second)).times_remaining == 2
    assert await entitlement_service.get_available_times(user.id) == 3


async def test_consume_rejects_non_positive_amount(user):
    with pytest.raises(ValidationException):
        await entitlement_service.use_package_times(user.id, 0)


async def test_deduct_after_generation_reports_failure(user):
    assert await entitlement_service.deduct_after_generation(user.id) is False
    await _grant(user.id, 1)
    assert await entitlement_service.deduct_after_generation(user.id) is True
    assert await entitlement_service.get_available_times(user.id) == 0


async def test_grant_sets_expiry_and_defaults(user):
    before = DateUtils.now()
    user_package = await _grant(user.id, 10, days=7)

    assert user_package.times_used == 0
    assert user_package.times_remaining == 10
    assert user_package.status == UserPackageStatus.ACTIVE
    assert user_package.price == Decimal("0.00")
    assert user_package.package_id is None
    expires_at = DateUtils.to_naive(user_package.expires_at)
    assert before + timedelta(days=7) <= expires_at <= DateUtils.now() + timedelta(days=7)


async def test_grant_never_expires(user):
    user_package = await _grant(user.id, 10)
    assert user_package.expires_at is None


async def test_grant_validation(user):
    with pytest.raises(ValidationException):
        await _grant(user.id, 0, days=1)
    with pytest.raises(ValidationException):
        await entitlement_service.grant(user.id, "x", 1, validity_days=0)


async def test_new_user_free_credits(user):
    user_package = await entitlement_service.grant_new_user_free_credits(user.id)

    assert user_package.package_name == entitlement_service.FREE_CREDITS_NAME
    assert user_package.package_id is None
    assert user_package.price == Decimal("0.00")
    assert await entitlement_service.get_available_times(user.id) == user_package.times_total


async def test_admin_grant_replaces_previous_grant(user):
    await entitlement_service.set_admin_granted_times(user.id, 5)
    await entitlement_service.set_admin_granted_times(user.id, 8)

    grants = await UserPackage.filter(user_id=user.id, package_name=entitlement_service.ADMIN_GRANT_NAME)
    assert len(grants) == 1
    assert grants[0].times_total == 8

    assert await entitlement_service.set_admin_granted_times(user.id, 0) is None
    assert await UserPackage.filter(user_id=user.id).count() == 0


async def test_admin_grant_unknown_user():
    with pytest.raises(NotFoundException):
        await entitlement_service.set_admin_granted_times(9999, 3)


async def test_purchase_package_grants_and_extends_membership(user, package):
    user_package = await entitlement_service.purchase_package(user.id, package)

    assert user_package.package_id == package.id
    assert user_package.times_total == package.usage_count
    assert user_package.price == package.price

    info = await entitlement_service.get_member_info(user.id)
    assert info["is_member"] is True
    assert info["available_times"] == package.usage_count


async def test_user_packages_report_lazy_expired_status(user):
    user_package = await _grant(user.id, 3, days=10)
    await UserPackage.filter(id=user_package.id).update(expires_at=DateUtils.now() - timedelta(minutes=1))

    packages = await entitlement_service.get_user_packages(user.id)

    assert packages[0]["status"] == UserPackageStatus.EXPIRED.value
    # 只在查询结果中体现，不回写数据库
    assert (await _refresh(user_package)).status == UserPackageStatus.ACTIVE
