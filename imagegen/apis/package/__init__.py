from fastapi.routing import APIRouter
from .admin_api import admin
from .api import api

package_router = APIRouter()
package_router.include_router(admin, tags=["套餐-管理后台相关接口"])
package_router.include_router(api, tags=["套餐-接口"])
