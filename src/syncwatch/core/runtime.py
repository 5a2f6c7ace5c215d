"""运行时容器 - 组装客户端、投影、Worker 跟踪器和设置对比."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from datetime import datetime
from typing import Any

import httpx
from fastapi.requests import HTTPConnection

from syncwatch.config import Settings
from syncwatch.core.client import DashboardClient, DashboardConfig
from syncwatch.core.comparison import SettingsComparisonModel
from syncwatch.core.live import LiveUpdateChannel
from syncwatch.core.notifier import UpdateNotifier
from syncwatch.core.pipeline import ViewState
from syncwatch.core.projection import RepoProjection
from syncwatch.core.repo_actions import RepoActions
from syncwatch.core.selection import SelectionEngine
from syncwatch.core.workers import WorkerTracker, create_worker_trackers
from syncwatch.models.repo import DashboardSnapshot

logger = logging.getLogger(__name__)


class DashboardRuntime:
    """一个面板会话的全部状态."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.client = DashboardClient(
            DashboardConfig(
                base_url=settings.dashboard_url,
                timeout=settings.request_timeout_seconds,
            ),
            transport=transport,
        )
        self.projection = RepoProjection(settings.wall_time_parallelism)
        self.view_state = ViewState()
        self.workers: dict[str, WorkerTracker] = create_worker_trackers(self.client)
        self.channel = LiveUpdateChannel(
            self.client,
            self.projection,
            reconnect_delay=settings.reconnect_delay_seconds,
            heartbeat_timeout=settings.heartbeat_timeout_seconds,
            sleep=sleep,
        )
        self.comparison = SettingsComparisonModel(self.client)
        self.selection = SelectionEngine(self.comparison)
        self.repo_actions = RepoActions(self.client, self.projection)
        self.notifier = UpdateNotifier()

        self.channel.add_listener(self._on_snapshot)

    async def start(self) -> None:
        """加载初始状态并启动事件流."""
        await self.channel.load_initial()
        if self.settings.live_updates_enabled:
            self.channel.start()
        else:
            logger.info("实时更新已禁用，仅使用初始快照")

        await self.poll_workers()
        await self.comparison.load_syncs()
        await self.comparison.load_categories()

    async def stop(self) -> None:
        """停止事件流并关闭客户端."""
        await self.channel.stop()
        await self.client.close()

    async def _on_snapshot(self, snapshot: DashboardSnapshot) -> None:
        await self.notifier.broadcast(
            {
                "type": "snapshot",
                "data": {
                    "version": self.projection.version,
                    "sequence": snapshot.sequence,
                    "stats": self.projection.stats.as_dict(),
                    "summary": self.projection.summary.display(),
                },
            }
        )

    async def poll_workers(self) -> None:
        """轮询三个 Worker 并推送最新状态."""
        await asyncio.gather(*(tracker.poll() for tracker in self.workers.values()))
        await self.notifier.broadcast(
            {"type": "workers", "data": self.worker_views()}
        )

    def worker_views(self) -> dict[str, dict[str, Any]]:
        """全部 Worker 控件的展示数据."""
        return {kind: asdict(tracker.view()) for kind, tracker in self.workers.items()}

    async def tick_elapsed(self, now: datetime | None = None) -> dict[str, str]:
        """推送同步中仓库的实时耗时（只在有同步中仓库时推送）."""
        elapsed = self.projection.live_elapsed(now)
        if elapsed:
            await self.notifier.broadcast({"type": "elapsed", "data": elapsed})
        return elapsed


def get_runtime(conn: HTTPConnection) -> DashboardRuntime:
    """依赖注入：获取应用的运行时容器."""
    return conn.app.state.runtime
