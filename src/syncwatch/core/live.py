"""实时更新通道 - 管理事件流连接并把快照交给投影模型."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from syncwatch.core.client import DashboardClient, DashboardError, ServerEvent
from syncwatch.core.projection import RepoProjection
from syncwatch.models.repo import DashboardSnapshot

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[DashboardSnapshot], Awaitable[None]]


class ChannelState:
    """连接状态."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class LiveUpdateChannel:
    """SSE 连接生命周期：连接、断线后固定延迟重连、心跳."""

    def __init__(
        self,
        client: DashboardClient,
        projection: RepoProjection,
        reconnect_delay: float = 5.0,
        heartbeat_timeout: float | None = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.projection = projection
        self.reconnect_delay = reconnect_delay
        self.heartbeat_timeout = heartbeat_timeout
        self._sleep = sleep

        self.state = ChannelState.DISCONNECTED
        self.connect_attempts = 0
        self.last_event_at: float | None = None
        self.last_heartbeat: float | None = None

        self._listeners: list[SnapshotListener] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None

    def add_listener(self, listener: SnapshotListener) -> None:
        """注册快照应用后的回调."""
        self._listeners.append(listener)

    async def load_initial(self) -> bool:
        """通过 GET /api/state 加载初始快照."""
        try:
            snapshot = await self.client.get_state()
        except DashboardError as e:
            logger.error(f"加载初始状态失败: {e}")
            return False

        await self._apply(snapshot)
        return True

    def start(self) -> asyncio.Task[None]:
        """在后台启动连接循环."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """停止连接循环并关闭当前连接."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.state = ChannelState.DISCONNECTED

    async def run(self) -> None:
        """连接循环：每次断开后等待固定延迟再完整重连（不退避、不限次数）."""
        self._running = True
        while self._running:
            await self.connect_once()
            if not self._running:
                break
            logger.info(f"事件流已断开，{self.reconnect_delay} 秒后重连")
            await self._sleep(self.reconnect_delay)

    async def connect_once(self) -> None:
        """建立一次连接并消费事件，直到连接结束或失败."""
        self.state = ChannelState.CONNECTING
        self.connect_attempts += 1
        try:
            async for event in self.client.stream_events(
                on_open=self._on_open,
                read_timeout=self.heartbeat_timeout,
            ):
                await self.handle_event(event)
            logger.warning("事件流被服务端关闭")
        except DashboardError as e:
            logger.warning(f"事件流连接失败: {e}")
        finally:
            self.state = ChannelState.DISCONNECTED

    def _on_open(self) -> None:
        self.state = ChannelState.CONNECTED
        self.last_event_at = time.monotonic()
        logger.info("事件流已连接")

    async def handle_event(self, event: ServerEvent) -> None:
        """处理一条事件：state 整体替换快照，heartbeat 只刷新存活时间."""
        self.last_event_at = time.monotonic()

        if event.event == "state":
            try:
                snapshot = DashboardSnapshot.model_validate_json(event.data)
            except ValueError:
                logger.warning("state 事件格式错误，已忽略")
                return
            await self._apply(snapshot)
        elif event.event == "heartbeat":
            self.last_heartbeat = self.last_event_at

    async def _apply(self, snapshot: DashboardSnapshot) -> None:
        if not self.projection.apply_snapshot(snapshot):
            return

        for listener in self._listeners:
            try:
                await listener(snapshot)
            except Exception:
                logger.exception("快照回调执行失败")

    def is_stale(self, now: float | None = None) -> bool:
        """已连接但超过心跳窗口没有收到任何事件."""
        if (
            self.state != ChannelState.CONNECTED
            or self.heartbeat_timeout is None
            or self.last_event_at is None
        ):
            return False
        current = now if now is not None else time.monotonic()
        return current - self.last_event_at > self.heartbeat_timeout
