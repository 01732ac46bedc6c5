from fastapi import FastAPI

from imagegen.apis import register_routes
from imagegen.common.config import config
from imagegen.common.middleware import register_middleware
from imagegen.common.tasks.celery_task.celery_app import celery_manager
from imagegen.core.lifespan import lifespan


class _Application:
    """
    项目统一容器，负责创建 FastAPI/Celery 等实例
    """

    def __init__(self):
        self.celery_app = celery_manager.app
        self.fastapi_app = self._init_app()

    @staticmethod
    def _init_app() -> FastAPI:
        app = FastAPI(
            lifespan=lifespan,
            debug=config.debug_mode,
            title=config.project_name,
            docs_url=f"{config.prefix}{config.doc.docs_url}" if config.doc.enable_docs else None,
            redoc_url=f"{config.prefix}{config.doc.redoc_url}" if config.doc.enable_redoc else None,
        )
        # 注册所有模块路由
        register_routes(app)

        # 注册中间件
        register_middleware(app)
        return app


application = _Application()
app = application.fastapi_app
celery_app = application.celery_app
