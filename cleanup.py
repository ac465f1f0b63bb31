# cleanup.py
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from grindhub.core.config import settings
from grindhub.websocket.manager import manager

logger = logging.getLogger(__name__)


async def sweep_stale_connections():
    """ping 一遍所有实时连接，发不出去的直接移除"""
    removed = await manager.cleanup_stale_connections()
    if removed:
        logger.info(f"[cleanup] 移除了 {removed} 个失效连接")


def start_scheduler() -> AsyncIOScheduler | None:
    """启动定时巡检，需要在事件循环里调用（lifespan 启动阶段）"""
    interval = settings.WS_SWEEP_INTERVAL_SECONDS
    if interval <= 0:
        logger.info("[cleanup] 失效连接巡检已关闭")
        return None

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_stale_connections,
        "interval",
        seconds=interval,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"[cleanup] 失效连接巡检已启动，每 {interval} 秒一次")
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler | None):
    if scheduler is None:
        return
    scheduler.shutdown(wait=False)
    logger.info("[cleanup] 失效连接巡检已关闭")
