"""
Celery 实例配置 + Worker 信号处理
"""
from celery import Celery, signals

from imagegen.common.config import config
from imagegen.core.logger_util import logger


class CeleryManager:
    """封装 Celery 实例创建、配置和 Worker 信号"""

    def __init__(self):
        self.app = Celery("imagegen", broker=config.redis.url, backend=config.redis.url)
        self.app.autodiscover_tasks(["imagegen.common.tasks.celery_task"], related_name="recharge_tasks")
        self._configure()
        self._register_signals()

    def _configure(self):
        self.app.conf.update(
            task_serializer=config.celery.task_serializer,
            result_serializer=config.celery.result_serializer,
            accept_content=config.celery.accept_content,
            result_expires=config.celery.result_expires,
            timezone=config.celery.timezone,
            enable_utc=True,
            task_default_queue="default",
            worker_prefetch_multiplier=1,
            task_acks_late=True,
            task_reject_on_worker_lost=True,
        )

    @staticmethod
    def _register_signals():
        @signals.worker_process_init.connect
        def init_worker(**kwargs):
            # 数据库连接由 run_async 按任务建立和关闭
            logger.info("Worker 进程启动")

        @signals.task_prerun.connect
        def task_prerun_handler(sender=None, task_id=None, task=None, **kwargs):
            logger.debug(f"任务 {task_id} 开始: {task.name}")

        @signals.task_failure.connect
        def task_failure_handler(sender=None, task_id=None, exception=None, einfo=None, **kwargs):
            logger.error(f"❌ 任务 {task_id} 执行失败: {exception}\n{einfo}")


# 模块级单例 Celery
celery_manager = CeleryManager()
celery_app = celery_manager.app
