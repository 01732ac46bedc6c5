"""
充值记录相关 Celery 任务
"""
from datetime import datetime

from imagegen.common.decorators.run_async import run_async
from imagegen.common.tasks.celery_task.celery_app import celery_app
from imagegen.common.utils import DateUtils
from imagegen.core.logger_util import logger


@celery_app.task(name="recharge.close_expired_recharge")
@run_async
async def close_expired_recharge_task(recharge_id: int) -> dict:
    """
    关闭超时未支付的充值记录
    """
    from imagegen.service.recharge_service import recharge_service

    logger.info(f"开始关闭超时充值记录，ID: {recharge_id}")
    closed = await recharge_service.close_expired_recharge(recharge_id)
    return {"success": closed, "recharge_id": recharge_id}


def schedule_close_expired_recharge(recharge_id: int, expire_time: datetime):
    """
    在支付截止时间投递关闭任务
    投递失败只记录日志，待支付记录仍可由后续支付回调正常完成
    """
    countdown = max(int((expire_time - DateUtils.now()).total_seconds()), 0)
    try:
        close_expired_recharge_task.apply_async(args=[recharge_id], countdown=countdown)
        logger.info(f"已投递充值记录 {recharge_id} 的超时关闭任务，{countdown} 秒后执行")
    except Exception as e:
        logger.error(f"❌ 投递充值记录 {recharge_id} 超时关闭任务失败: {e}")
