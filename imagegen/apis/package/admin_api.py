from fastapi import APIRouter, Path

from imagegen.apis.package.schema.request import GrantTimesReq
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper, generate_responses
from imagegen.common.schema import BaseResponse, PackageCreate, PackagePatch
from imagegen.service.account_service import account_service
from imagegen.service.entitlement_service import entitlement_service
from imagegen.service.package_service import package_service

admin = APIRouter()


@admin.get("/admin/packages", summary="全部套餐")
async def list_packages():
    await account_service.require_admin()
    return ResponseHelper.success(await package_service.list(order_by=["sort_order", "price", "id"]))


@admin.get("/admin/packages/{package_id}", summary="套餐详情",
           responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]))
async def get_package(package_id: int = Path(..., gt=0)):
    await account_service.require_admin()
    return ResponseHelper.success(await package_service.get_or_raise(package_id))


@admin.post("/admin/packages", summary="创建套餐",
            responses=generate_responses([HttpErrorCodeEnum.DATA_DUPLICATE]))
async def create_package(req: PackageCreate):
    await account_service.require_admin()
    return ResponseHelper.success(await package_service.create_package(req))


@admin.patch("/admin/packages/{package_id}", summary="更新套餐",
             responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND, HttpErrorCodeEnum.DATA_DUPLICATE]))
async def update_package(req: PackagePatch, package_id: int = Path(..., gt=0)):
    await account_service.require_admin()
    return ResponseHelper.success(await package_service.update_package(package_id, req))


@admin.delete(
    "/admin/packages/{package_id}",
    summary="删除套餐",
    description="用户已购买的套餐记录保留，只解除与该套餐的关联",
    response_model=BaseResponse,
)
async def delete_package(package_id: int = Path(..., gt=0)):
    await account_service.require_admin()
    await package_service.delete_package(package_id)
    return ResponseHelper.success()


@admin.post("/admin/packages/grant-times", summary="设置用户赠送次数",
            responses=generate_responses([HttpErrorCodeEnum.NOT_FOUND]))
async def grant_times(req: GrantTimesReq):
    await account_service.require_admin()
    user_package = await entitlement_service.set_admin_granted_times(req.user_id, req.times)
    return ResponseHelper.success(user_package)
