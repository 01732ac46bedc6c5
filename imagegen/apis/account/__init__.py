from fastapi.routing import APIRouter
from .api import api

account_router = APIRouter()
account_router.include_router(api, tags=["用户认证-接口"])
