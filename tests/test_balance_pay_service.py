from decimal import Decimal

import pytest

from imagegen.common.exception.exception import (
    HttpBusinessException,
    InsufficientBalanceException,
    StateConflictException,
    ValidationException,
)
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import PaymentMethod, RechargeRecord, RechargeStatus, User, UserBalance, UserPackage
from imagegen.service.balance_pay_service import balance_pay_service
from imagegen.service.recharge_service import recharge_service
from imagegen.service.user_balance_service import user_balance_service


async def _balance(user_id) -> UserBalance:
    return await UserBalance.get(user_id=user_id)


async def test_insufficient_balance_reports_shortfall(user, package):
    await user_balance_service.credit(user.id, Decimal("5.00"))

    with pytest.raises(InsufficientBalanceException) as exc_info:
        await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id)

    exc = exc_info.value
    assert exc.current_balance == Decimal("5.00")
    assert exc.required_amount == Decimal("10.00")
    assert exc.shortfall == Decimal("5.00")
    assert exc.data["shortfall"] == Decimal("5.00")
    assert exc.error_code == HttpErrorCodeEnum.INSUFFICIENT_BALANCE
    assert await RechargeRecord.filter(user_id=user.id).count() == 0
    assert (await _balance(user.id)).balance == Decimal("5.00")


async def test_pay_for_package(user, package):
    await user_balance_service.credit(user.id, Decimal("15.00"))

    res = await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id)

    assert res["remaining_balance"] == Decimal("5.00")
    assert res["amount"] == Decimal("10.00")
    record = await RechargeRecord.get(id=res["recharge_id"])
    assert record.out_trade_no == res["transaction_id"]
    assert record.status == RechargeStatus.COMPLETED
    assert record.payment_method == PaymentMethod.BALANCE
    balance = await _balance(user.id)
    assert balance.total_consumed == Decimal("10.00")
    assert balance.total_recharged == Decimal("15.00")
    user_package = await UserPackage.get(recharge_id=record.id)
    assert user_package.times_remaining == package.usage_count
    assert (await User.get(id=user.id)).is_member is True


async def test_pay_completes_existing_pending_record(user, package):
    await user_balance_service.credit(user.id, Decimal("10.00"))
    pending = await recharge_service.create_recharge(
        user.id, Decimal("10.00"), PaymentMethod.WECHAT, package_id=package.id)

    res = await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id, recharge_id=pending.id)

    assert res["recharge_id"] == pending.id
    record = await RechargeRecord.get(id=pending.id)
    assert record.status == RechargeStatus.COMPLETED
    assert record.payment_method == PaymentMethod.BALANCE
    assert await RechargeRecord.filter(user_id=user.id).count() == 1

    await user_balance_service.credit(user.id, Decimal("10.00"))
    with pytest.raises(StateConflictException):
        await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id, recharge_id=pending.id)


async def test_pay_rejects_price_mismatch(user, package):
    await user_balance_service.credit(user.id, Decimal("20.00"))

    with pytest.raises(ValidationException):
        await balance_pay_service.pay(user.id, Decimal("9.00"), package_id=package.id)
    assert (await _balance(user.id)).balance == Decimal("20.00")


async def test_grant_failure_is_compensated(user, package, monkeypatch):
    await user_balance_service.credit(user.id, Decimal("10.00"))

    async def broken_purchase(*args, **kwargs):
        raise RuntimeError("grant failed")

    monkeypatch.setattr(balance_pay_service.entitlement, "purchase_package", broken_purchase)

    with pytest.raises(RuntimeError):
        await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id)

    balance = await _balance(user.id)
    assert balance.balance == Decimal("10.00")
    assert balance.total_consumed == Decimal("0.00")
    record = await RechargeRecord.get(user_id=user.id)
    assert record.status == RechargeStatus.REFUNDED
    assert record.refund_reason == balance_pay_service.COMPENSATION_REASON
    assert await UserPackage.filter(user_id=user.id).count() == 0


async def test_refund_of_balance_payment_returns_money(user, package):
    await user_balance_service.credit(user.id, Decimal("10.00"))
    res = await balance_pay_service.pay(user.id, Decimal("10.00"), package_id=package.id)

    await recharge_service.refund(res["recharge_id"], "用户申请")

    balance = await _balance(user.id)
    assert balance.balance == Decimal("10.00")
    assert balance.total_consumed == Decimal("0.00")


async def test_pay_disabled(user, monkeypatch):
    from imagegen.common.config import config

    monkeypatch.setattr(config.payment, "balance_enabled", False)

    with pytest.raises(HttpBusinessException) as exc_info:
        await balance_pay_service.pay(user.id, Decimal("1.00"))
    assert exc_info.value.error_code == HttpErrorCodeEnum.PAYMENT_DISABLED
