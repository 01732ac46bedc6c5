from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from imagegen.common.middleware.RequestContextMiddleware import RequestContextMiddleware


def register_middleware(app: FastAPI):
    """
    中间件注册，后注册的在外层
    """
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
