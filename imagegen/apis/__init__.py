from fastapi import FastAPI, APIRouter

from imagegen.common.config import config
from imagegen.common.exception.handlers import register_exception_handlers


def register_routes(app: FastAPI):
    """
    注册路由
    :param app: fastapi对象
    """
    register_exception_handlers(app)

    api_route = APIRouter()
    from .account import account_router
    from .package import package_router
    from .payment.apis import payment_router
    from .recharge import recharge_router

    api_route.include_router(account_router)
    api_route.include_router(package_router)
    api_route.include_router(payment_router)
    api_route.include_router(recharge_router)
    app.include_router(api_route, prefix=config.prefix)


__all__ = ["register_routes"]
