"""测试实时更新通道."""

from unittest.mock import AsyncMock

import httpx
from conftest import FakeMigrationServer, sse_body

from syncwatch.core.client import DashboardClient, ServerEvent
from syncwatch.core.live import ChannelState, LiveUpdateChannel
from syncwatch.core.projection import RepoProjection

STATE_PAYLOAD = {
    "sourceOrg": "src-org",
    "targetOrg": "dst-org",
    "repos": {
        "alpha": {"name": "alpha", "status": "synced"},
        "beta": {"name": "beta", "status": "failed", "errorMessage": "auth error"},
    },
}


def _event_stream(*events: tuple[str, object]) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=sse_body(*events),
    )


class TestHandleEvent:
    """测试事件处理."""

    async def test_state_event_applies_snapshot(
        self, dashboard_client: DashboardClient
    ) -> None:
        """state 事件整体替换快照并通知监听者."""
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)
        listener = AsyncMock()
        channel.add_listener(listener)

        await channel.handle_event(
            ServerEvent(
                event="state",
                data='{"repos": {"x": {"name": "x", "status": "queued"}}}',
            )
        )

        assert set(projection.records) == {"x"}
        listener.assert_awaited_once()

    async def test_heartbeat_does_not_touch_projection(
        self, dashboard_client: DashboardClient
    ) -> None:
        """heartbeat 只刷新存活时间."""
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)
        listener = AsyncMock()
        channel.add_listener(listener)

        await channel.handle_event(ServerEvent(event="heartbeat", data=""))

        assert channel.last_heartbeat is not None
        assert projection.has_data is False
        listener.assert_not_awaited()

    async def test_malformed_state_skipped(
        self, dashboard_client: DashboardClient
    ) -> None:
        """格式错误的 state 事件被忽略，现有快照保留."""
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)
        await channel.handle_event(
            ServerEvent(event="state", data='{"repos": {"a": {"name": "a"}}}')
        )

        await channel.handle_event(ServerEvent(event="state", data="{not json"))

        assert set(projection.records) == {"a"}

    async def test_listener_failure_does_not_break_channel(
        self, dashboard_client: DashboardClient
    ) -> None:
        """监听者异常只记录日志."""
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)
        channel.add_listener(AsyncMock(side_effect=RuntimeError("boom")))
        second = AsyncMock()
        channel.add_listener(second)

        await channel.handle_event(ServerEvent(event="state", data='{"repos": {}}'))

        second.assert_awaited_once()


class TestConnection:
    """测试连接生命周期."""

    async def test_load_initial(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """初始快照通过 GET /api/state 加载."""
        server.route("GET", "/api/state", STATE_PAYLOAD)
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)

        assert await channel.load_initial() is True
        assert projection.get("beta").error_message == "auth error"
        assert projection.snapshot.source_org == "src-org"

    async def test_load_initial_failure(self, dashboard_client: DashboardClient) -> None:
        """初始加载失败返回 False."""
        channel = LiveUpdateChannel(dashboard_client, RepoProjection())
        assert await channel.load_initial() is False

    async def test_connect_once_consumes_stream(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """一次连接处理全部事件，结束后回到断开状态."""
        server.route(
            "GET",
            "/events",
            handler=lambda request: _event_stream(
                ("heartbeat", ""),
                ("state", STATE_PAYLOAD),
            ),
        )
        projection = RepoProjection()
        channel = LiveUpdateChannel(dashboard_client, projection)
        states: list[str] = []

        async def record_state(snapshot) -> None:
            states.append(channel.state)

        channel.add_listener(record_state)
        await channel.connect_once()

        assert states == [ChannelState.CONNECTED]
        assert channel.state == ChannelState.DISCONNECTED
        assert set(projection.records) == {"alpha", "beta"}
        assert channel.last_heartbeat is not None

    async def test_reconnects_after_fixed_delay(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """断开后等待固定延迟再完整重连，不退避."""
        responses = iter(
            [
                httpx.Response(503),
                _event_stream(("state", STATE_PAYLOAD)),
            ]
        )
        server.route("GET", "/events", handler=lambda request: next(responses))

        delays: list[float] = []
        channel: LiveUpdateChannel | None = None

        async def fake_sleep(seconds: float) -> None:
            delays.append(seconds)
            if len(delays) == 2:
                await channel.stop()

        projection = RepoProjection()
        channel = LiveUpdateChannel(
            dashboard_client, projection, reconnect_delay=5.0, sleep=fake_sleep
        )
        await channel.run()

        assert delays == [5.0, 5.0]
        assert channel.connect_attempts == 2
        assert set(projection.records) == {"alpha", "beta"}
        assert channel.state == ChannelState.DISCONNECTED

    def test_is_stale(self, dashboard_client: DashboardClient) -> None:
        """已连接但超过心跳窗口没有事件时视为失效."""
        channel = LiveUpdateChannel(
            dashboard_client, RepoProjection(), heartbeat_timeout=60.0
        )
        assert channel.is_stale(1000.0) is False

        channel.state = ChannelState.CONNECTED
        channel.last_event_at = 100.0
        assert channel.is_stale(150.0) is False
        assert channel.is_stale(161.0) is True
