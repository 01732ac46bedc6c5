from fastapi.routing import APIRouter
from .admin_api import admin
from .api import api

recharge_router = APIRouter()
recharge_router.include_router(admin, tags=["充值记录-管理后台相关接口"])
recharge_router.include_router(api, tags=["充值记录-接口"])
