from decimal import Decimal
from typing import List

from tortoise.transactions import atomic

from imagegen.common.base import BaseService
from imagegen.common.exception.exception import HttpBusinessException, ValidationException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.models import Package, UserPackage
from imagegen.common.schema import PackageCreate, PackagePatch
from imagegen.common.utils import DateUtils
from imagegen.core.logger_util import logger


class PackageService(BaseService[Package]):
    """套餐目录service"""
    not_found_message = "套餐不存在"

    async def get_purchasable(self, package_id: int, amount: Decimal) -> Package:
        """
        校验套餐可以购买，且支付金额与套餐价格一致
        """
        package = await self.get_or_raise(package_id)
        if not package.is_active:
            raise ValidationException("套餐已下架")
        if package.price != amount:
            raise ValidationException(f"支付金额与套餐价格不一致，套餐价格: {package.price}")
        return package

    async def get_active_packages(self) -> List[Package]:
        """上架中的套餐，按排序值、价格升序"""
        return await self.list(filters={"is_active": True}, order_by=["sort_order", "price", "id"])

    async def _check_name_unique(self, name: str, exclude_id: int = None):
        query = self.query(name=name)
        if exclude_id is not None:
            query = query.exclude(id=exclude_id)
        if await query.exists():
            raise HttpBusinessException(HttpErrorCodeEnum.DATA_DUPLICATE, "套餐名称已存在")

    async def create_package(self, req: PackageCreate) -> Package:
        await self._check_name_unique(req.name)
        package = await self.model_class.create(
            name=req.name,
            description=req.description,
            usage_count=req.usage_count,
            validity_days=req.validity_days,
            price=req.price,
            sort_order=req.sort_order,
            is_active=req.is_active,
        )
        logger.info(f"✅ 创建套餐 {package.id}: {package.name}")
        return package

    async def update_package(self, package_id: int, patch: PackagePatch) -> Package:
        """
        按字段逐一更新，只有 PackagePatch 中声明且传值的字段会被修改
        """
        package = await self.get_or_raise(package_id)

        if patch.name is not None and patch.name != package.name:
            await self._check_name_unique(patch.name, exclude_id=package_id)
            package.name = patch.name
        if patch.description is not None:
            package.description = patch.description
        if patch.usage_count is not None:
            package.usage_count = patch.usage_count
        if patch.validity_days is not None:
            package.validity_days = patch.validity_days
        if patch.price is not None:
            package.price = patch.price
        if patch.sort_order is not None:
            package.sort_order = patch.sort_order
        if patch.is_active is not None:
            package.is_active = patch.is_active

        await package.save()
        logger.info(f"✅ 更新套餐 {package_id}")
        return package

    @atomic()
    async def delete_package(self, package_id: int):
        """
        删除套餐，用户已获得的套餐记录保留，只断开与套餐的关联
        """
        await self.get_or_raise(package_id)
        detached = await UserPackage.filter(package_id=package_id).update(package_id=None, updated_at=DateUtils.now())
        await self.delete(id=package_id)
        logger.info(f"✅ 删除套餐 {package_id}，解除关联的用户套餐 {detached} 条")


package_service = PackageService()
