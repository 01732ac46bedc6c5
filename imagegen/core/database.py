"""
数据库连接

连接的打开和关闭由进程入口负责：FastAPI 在 lifespan 中，Celery 在每个任务中（run_async），
service 只通过 Tortoise 模型访问当前连接
"""
from typing import Optional

from tortoise import Tortoise, connections
from tortoise.exceptions import ConfigurationError

from imagegen.common.config import DatabaseConfig, config
from imagegen.core.logger_util import logger

MODEL_MODULES = ["imagegen.common.models"]


def build_tortoise_config(db_config: DatabaseConfig, db_url: Optional[str] = None) -> dict:
    """
    :param db_url: 指定时直接使用该连接串（如测试用的 sqlite://:memory:），不注册 aerich 模型
    """
    if db_url:
        connection = db_url
        models = MODEL_MODULES
    else:
        connection = {
            "engine": "tortoise.backends.mysql",
            "credentials": {
                "host": db_config.host,
                "port": db_config.port,
                "user": db_config.user,
                "password": db_config.password,
                "database": db_config.name,
                "charset": db_config.charset,
            },
        }
        models = [*MODEL_MODULES, "aerich.models"]
    return {
        "connections": {"default": connection},
        "apps": {
            "models": {
                "models": models,
                "default_connection": "default",
            }
        },
        # 数据库存储配置时区的本地时间
        "use_tz": False,
        "timezone": config.timezone,
    }


# aerich 迁移使用
TORTOISE_ORM = build_tortoise_config(config.database)


def _is_connected() -> bool:
    try:
        return bool(connections.db_config)
    except ConfigurationError:
        return False


async def connect_database():
    """
    初始化数据库连接，已经初始化过则直接返回
    关闭后的连接会在下次使用时按已有配置重新建立
    """
    if _is_connected():
        return
    await Tortoise.init(config=TORTOISE_ORM)
    logger.info("✅ 数据库连接成功")


async def disconnect_database():
    await Tortoise.close_connections()
    logger.info("🔒 数据库连接已关闭")
