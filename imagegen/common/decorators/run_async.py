import asyncio
from functools import wraps


def run_async(func):
    """
    在 Celery Worker 中运行 async 任务
    每个任务使用独立的事件循环，任务结束后关闭本次使用的数据库连接，
    避免连接绑定到已经关闭的事件循环
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        async def run_with_database():
            from imagegen.core.database import connect_database, disconnect_database

            await connect_database()
            try:
                return await func(*args, **kwargs)
            finally:
                await disconnect_database()

        return asyncio.run(run_with_database())

    return wrapper
