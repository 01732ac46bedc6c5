from decimal import Decimal

import pytest

from imagegen.common.exception.exception import HttpBusinessException, NotFoundException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import Package, UserPackage
from imagegen.common.schema import PackageCreate, PackagePatch
from imagegen.service.entitlement_service import entitlement_service
from imagegen.service.package_service import package_service


def _create_req(name: str, price: str = "10.00", **kwargs) -> PackageCreate:
    return PackageCreate(name=name, usage_count=10, validity_days=30, price=Decimal(price), **kwargs)


async def test_create_package_rejects_duplicate_name(package):
    with pytest.raises(HttpBusinessException) as exc_info:
        await package_service.create_package(_create_req(package.name))

    assert exc_info.value.code == HttpErrorCodeEnum.DATA_DUPLICATE.code


async def test_active_packages_ordered_by_sort_order_then_price():
    await package_service.create_package(_create_req("贵", price="50.00"))
    await package_service.create_package(_create_req("便宜", price="5.00"))
    await package_service.create_package(_create_req("置顶", price="99.00", sort_order=-1))
    await package_service.create_package(_create_req("下架", price="1.00", is_active=False))

    packages = await package_service.get_active_packages()

    assert [p.name for p in packages] == ["置顶", "便宜", "贵"]


async def test_update_package_only_changes_given_fields(package):
    updated = await package_service.update_package(package.id, PackagePatch(price=Decimal("12.50"), is_active=False))

    assert updated.price == Decimal("12.50")
    assert updated.is_active is False
    assert updated.name == package.name
    assert updated.usage_count == package.usage_count


async def test_update_package_rejects_name_of_other_package(package):
    other = await package_service.create_package(_create_req("进阶套餐"))

    with pytest.raises(HttpBusinessException):
        await package_service.update_package(other.id, PackagePatch(name=package.name))


async def test_delete_package_keeps_user_packages(user, package):
    await entitlement_service.purchase_package(user.id, package)

    await package_service.delete_package(package.id)

    assert not await Package.exists(id=package.id)
    user_package = await UserPackage.get(user_id=user.id)
    assert user_package.package_id is None
    assert user_package.package_name == package.name
    assert await entitlement_service.get_available_times(user.id) == package.usage_count


async def test_get_missing_package():
    with pytest.raises(NotFoundException):
        await package_service.get_or_raise(999)
