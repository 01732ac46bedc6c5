from decimal import Decimal

import pytest

from imagegen.common.exception.exception import InsufficientBalanceException, ValidationException
from imagegen.common.models import UserBalance
from imagegen.service.user_balance_service import user_balance_service


async def test_credit_creates_missing_balance_row(user):
    balance = await user_balance_service.credit(user.id, "12.50")

    assert balance.balance == Decimal("12.50")
    assert balance.total_recharged == Decimal("12.50")
    assert await UserBalance.filter(user_id=user.id).count() == 1


async def test_debit_rejects_shortfall_without_change(user):
    await user_balance_service.credit(user.id, Decimal("3.00"))

    with pytest.raises(InsufficientBalanceException) as exc_info:
        await user_balance_service.debit(user.id, Decimal("5.00"))

    assert exc_info.value.shortfall == Decimal("2.00")
    balance = await UserBalance.get(user_id=user.id)
    assert balance.balance == Decimal("3.00")
    assert balance.total_consumed == Decimal("0.00")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00")])
async def test_credit_requires_positive_amount(user, amount):
    with pytest.raises(ValidationException):
        await user_balance_service.credit(user.id, amount)


async def test_update_user_balance_positive_counts_as_recharge(user):
    balance = await user_balance_service.update_user_balance(user.id, Decimal("8.00"))

    assert balance.balance == Decimal("8.00")
    assert balance.total_recharged == Decimal("8.00")
    assert balance.total_consumed == Decimal("0.00")


async def test_update_user_balance_negative_floors_at_zero(user):
    await user_balance_service.credit(user.id, Decimal("5.00"))

    balance = await user_balance_service.update_user_balance(user.id, Decimal("-7.00"))

    assert balance.balance == Decimal("0.00")
    assert balance.total_consumed == Decimal("7.00")


async def test_revert_recharge_may_go_negative(user):
    await user_balance_service.credit(user.id, Decimal("10.00"))
    await user_balance_service.debit(user.id, Decimal("6.00"))

    balance = await user_balance_service.revert_recharge(user.id, Decimal("10.00"))

    assert balance.balance == Decimal("-6.00")
    assert balance.total_recharged == Decimal("0.00")


async def test_record_consumption_allows_negative_balance(user):
    await user_balance_service.credit(user.id, Decimal("2.00"))

    balance = await user_balance_service.record_consumption(user.id, Decimal("5.00"))

    assert balance.balance == Decimal("-3.00")
    assert balance.total_consumed == Decimal("5.00")
    with pytest.raises(ValidationException):
        await user_balance_service.record_consumption(user.id, Decimal("0"))
