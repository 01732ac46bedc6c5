"""
Celery Worker 启动脚本
处理充值记录超时关闭等延时任务
"""
from imagegen.common.tasks.celery_task.celery_app import celery_app

if __name__ == "__main__":
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--pool=prefork",
        "--queues=default",
    ])
