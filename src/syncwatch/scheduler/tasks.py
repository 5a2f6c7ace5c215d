"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from syncwatch.config import Settings
from syncwatch.core.runtime import DashboardRuntime

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def poll_workers_task(runtime: DashboardRuntime) -> None:
    """Worker 轮询任务：与事件流无关，固定间隔执行."""
    try:
        await runtime.poll_workers()
    except Exception as e:
        logger.exception(f"Worker 轮询任务失败: {e}")


async def elapsed_tick_task(runtime: DashboardRuntime) -> None:
    """耗时刷新任务：推送同步中仓库的实时耗时."""
    try:
        await runtime.tick_elapsed()
    except Exception as e:
        logger.exception(f"耗时刷新任务失败: {e}")


def create_scheduler(settings: Settings, runtime: DashboardRuntime) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        poll_workers_task,
        "interval",
        seconds=settings.worker_poll_interval_seconds,
        args=[runtime],
        id="poll_workers_task",
        name="Worker 状态轮询",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.add_job(
        elapsed_tick_task,
        "interval",
        seconds=settings.elapsed_tick_seconds,
        args=[runtime],
        id="elapsed_tick_task",
        name="实时耗时刷新",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()
    logger.info(
        f"定时任务调度器已启动，Worker 轮询间隔: "
        f"{settings.worker_poll_interval_seconds} 秒"
    )

    return _scheduler


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None
