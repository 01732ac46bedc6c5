from datetime import timedelta
from decimal import Decimal

import pytest

from imagegen.common.exception.exception import (
    HttpBusinessException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import PaymentMethod, RechargeRecord, RechargeStatus, User, UserBalance, UserPackage
from imagegen.common.utils import DateUtils
from imagegen.service.recharge_service import recharge_service
from imagegen.service.user_balance_service import user_balance_service


async def _balance(user_id) -> UserBalance:
    return await UserBalance.get(user_id=user_id)


async def _pending(user_id, amount="10.00", **kwargs) -> RechargeRecord:
    return await recharge_service.create_recharge(user_id, Decimal(amount), PaymentMethod.ALIPAY, **kwargs)


async def test_create_pending_recharge(user):
    record = await _pending(user.id)

    assert record.status == RechargeStatus.PENDING
    assert record.out_trade_no.startswith("EP")
    assert record.expire_time is not None
    assert record.paid_at is None
    assert await UserBalance.filter(user_id=user.id).count() == 0


@pytest.mark.parametrize("amount", ["0", "-1", "0.001", "100000.00"])
async def test_create_recharge_rejects_invalid_amount(user, amount):
    with pytest.raises(ValidationException):
        await _pending(user.id, amount)


async def test_confirm_credits_balance_once(user):
    record = await _pending(user.id)

    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED, "T1") is True
    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED, "T1") is False

    balance = await _balance(user.id)
    assert balance.balance == Decimal("10.00")
    assert balance.total_recharged == Decimal("10.00")
    record = await RechargeRecord.get(id=record.id)
    assert record.status == RechargeStatus.COMPLETED
    assert record.transaction_id == "T1"
    assert record.paid_at is not None


async def test_confirm_failed_has_no_ledger_effect(user):
    record = await _pending(user.id)

    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.FAILED) is True
    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.FAILED) is False

    assert await UserBalance.filter(user_id=user.id).count() == 0


async def test_confirm_after_failed_is_state_conflict(user):
    record = await _pending(user.id)
    await recharge_service.confirm_recharge(record.id, RechargeStatus.FAILED)

    with pytest.raises(StateConflictException):
        await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED, "T2")
    assert await UserBalance.filter(user_id=user.id).count() == 0


async def test_confirm_rejects_invalid_target_and_unknown_record(user):
    record = await _pending(user.id)
    with pytest.raises(ValidationException):
        await recharge_service.confirm_recharge(record.id, RechargeStatus.REFUNDED)
    with pytest.raises(NotFoundException):
        await recharge_service.confirm_recharge(9999, RechargeStatus.COMPLETED)


async def test_confirm_package_purchase(user, package):
    record = await _pending(user.id, "10.00", package_id=package.id)

    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED, "T3") is True

    balance = await _balance(user.id)
    assert balance.balance == Decimal("0.00")
    assert balance.total_recharged == Decimal("10.00")
    assert balance.total_consumed == Decimal("10.00")
    user_package = await UserPackage.get(recharge_id=record.id)
    assert user_package.package_id == package.id
    assert user_package.times_remaining == package.usage_count
    assert (await User.get(id=user.id)).is_member is True


async def test_confirm_package_purchase_for_inactive_package_keeps_money(user, package):
    record = await _pending(user.id, "10.00", package_id=package.id)
    package.is_active = False
    await package.save()

    await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED)

    assert (await _balance(user.id)).balance == Decimal("10.00")
    assert await UserPackage.filter(user_id=user.id).count() == 0


async def test_confirm_by_out_trade_no_checks_amount(user):
    record = await _pending(user.id)

    with pytest.raises(ValidationException):
        await recharge_service.confirm_by_out_trade_no(record.out_trade_no, "T4", "9.99")
    assert await recharge_service.confirm_by_out_trade_no("EP-unknown", "T4", "10.00") is False
    assert await recharge_service.confirm_by_out_trade_no(record.out_trade_no, "T4", "10") is True


async def test_refund_requires_completed(user):
    record = await _pending(user.id)

    with pytest.raises(StateConflictException):
        await recharge_service.refund(record.id, "用户申请")
    assert (await RechargeRecord.get(id=record.id)).status == RechargeStatus.PENDING


async def test_refund_decrements_balance_and_total_recharged(user):
    record = await _pending(user.id)
    await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED)

    refunded = await recharge_service.refund(record.id, "用户申请")

    assert refunded.status == RechargeStatus.REFUNDED
    assert refunded.refund_reason == "用户申请"
    assert refunded.refunded_at is not None
    balance = await _balance(user.id)
    assert balance.balance == Decimal("0.00")
    assert balance.total_recharged == Decimal("0.00")

    with pytest.raises(StateConflictException):
        await recharge_service.refund(record.id, "重复退款")
    assert (await _balance(user.id)).balance == Decimal("0.00")


async def test_refund_allows_negative_balance(user):
    record = await _pending(user.id)
    await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED)
    await user_balance_service.debit(user.id, Decimal("8.00"))

    await recharge_service.refund(record.id, "争议退款")

    assert (await _balance(user.id)).balance == Decimal("-8.00")


async def test_confirm_package_purchase_with_negative_balance(user, package):
    refunded = await _pending(user.id)
    await recharge_service.confirm_recharge(refunded.id, RechargeStatus.COMPLETED)
    await user_balance_service.debit(user.id, Decimal("8.00"))
    await recharge_service.refund(refunded.id, "争议退款")

    record = await _pending(user.id, "10.00", package_id=package.id)
    assert await recharge_service.confirm_recharge(record.id, RechargeStatus.COMPLETED, "T9") is True

    assert (await RechargeRecord.get(id=record.id)).status == RechargeStatus.COMPLETED
    assert await UserPackage.filter(recharge_id=record.id).count() == 1
    balance = await _balance(user.id)
    assert balance.balance == Decimal("-8.00")
    assert balance.total_consumed == Decimal("18.00")


async def test_manual_recharge(user):
    record = await recharge_service.manual_recharge(user.id, "5.50", remark="补偿")

    assert record.payment_method == PaymentMethod.MANUAL
    assert record.status == RechargeStatus.COMPLETED
    assert (await _balance(user.id)).balance == Decimal("5.50")


async def test_close_expired_recharge(user):
    pending = await _pending(user.id)
    completed = await _pending(user.id)
    await recharge_service.confirm_recharge(completed.id, RechargeStatus.COMPLETED)

    assert await recharge_service.close_expired_recharge(pending.id) is True
    assert await recharge_service.close_expired_recharge(completed.id) is False

    assert (await RechargeRecord.get(id=pending.id)).status == RechargeStatus.FAILED
    assert (await RechargeRecord.get(id=completed.id)).status == RechargeStatus.COMPLETED


async def test_get_user_recharge_checks_owner(user, make_user):
    record = await _pending(user.id)
    other = await make_user()

    assert (await recharge_service.get_user_recharge(record.id, user.id)).id == record.id
    with pytest.raises(HttpBusinessException) as exc_info:
        await recharge_service.get_user_recharge(record.id, other.id)
    assert exc_info.value.error_code == HttpErrorCodeEnum.FORBIDDEN
    with pytest.raises(NotFoundException):
        await recharge_service.get_user_recharge(9999, user.id)


async def _ledger_for_stats(user_id):
    """
    alipay: 10.00 已完成, 5.00 待支付, 7.00 失败
    manual: 3.00 已完成
    wechat: 20.00 已退款
    """
    completed = await _pending(user_id, "10.00")
    await recharge_service.confirm_recharge(completed.id, RechargeStatus.COMPLETED)
    await _pending(user_id, "5.00")
    failed = await _pending(user_id, "7.00")
    await recharge_service.confirm_recharge(failed.id, RechargeStatus.FAILED)
    await recharge_service.manual_recharge(user_id, "3.00")
    refunded = await recharge_service.create_recharge(user_id, Decimal("20.00"), PaymentMethod.WECHAT)
    await recharge_service.confirm_recharge(refunded.id, RechargeStatus.COMPLETED)
    await recharge_service.refund(refunded.id, "用户申请")


async def test_recharge_stats(user):
    await _ledger_for_stats(user.id)

    stats = await recharge_service.get_recharge_stats()

    assert stats.total_revenue == Decimal("13.00")
    assert stats.today_revenue == Decimal("13.00")
    assert stats.month_revenue == Decimal("13.00")
    assert (stats.total_orders, stats.today_orders, stats.month_orders) == (5, 5, 5)
    assert (stats.pending_orders, stats.completed_orders, stats.failed_orders, stats.refunded_orders) == (1, 2, 1, 1)
    assert stats.avg_order_amount == Decimal("6.50")


async def test_recharge_stats_without_records():
    stats = await recharge_service.get_recharge_stats()

    assert stats.total_revenue == Decimal("0.00")
    assert stats.total_orders == 0
    assert stats.avg_order_amount == Decimal("0.00")


async def test_chart_data_groups_by_day_within_window(user):
    today = await _pending(user.id, "10.00")
    await recharge_service.confirm_recharge(today.id, RechargeStatus.COMPLETED)
    await _pending(user.id, "4.00")
    earlier = await _pending(user.id, "6.00")
    await recharge_service.confirm_recharge(earlier.id, RechargeStatus.COMPLETED)
    too_old = await _pending(user.id, "8.00")
    now = DateUtils.now()
    await RechargeRecord.filter(id=earlier.id).update(created_at=now - timedelta(days=2))
    await RechargeRecord.filter(id=too_old.id).update(created_at=now - timedelta(days=60))

    points = await recharge_service.get_chart_data(30)

    assert [(p.date, p.revenue, p.orders) for p in points] == [
        ((now - timedelta(days=2)).date(), Decimal("6.00"), 1),
        (now.date(), Decimal("10.00"), 2),
    ]


async def test_payment_method_stats_ordered_by_revenue(user):
    await _ledger_for_stats(user.id)

    stats = await recharge_service.get_payment_method_stats()

    assert [(s.payment_method, s.count, s.revenue) for s in stats] == [
        ("alipay", 3, Decimal("10.00")),
        ("manual", 1, Decimal("3.00")),
        ("wechat", 1, Decimal("0.00")),
    ]
