from contextlib import asynccontextmanager

from fastapi import FastAPI

from imagegen.common.config import config
from .database import connect_database, disconnect_database
from .logger_util import logger
from .redis_client import redis_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_database()
    await redis_client.connect()

    from imagegen.service.account_service import account_service
    await account_service.init_default_admin()
    logger.info(f"✅ {config.project_name} 启动完成")

    yield

    await disconnect_database()
    await redis_client.close()


__all__ = ["lifespan"]
