"""测试迁移服务端 API 客户端."""

import json

import httpx
import pytest
from conftest import SERVER_URL, FakeMigrationServer

from syncwatch.core.client import (
    DashboardApplicationError,
    DashboardClient,
    DashboardConfig,
    DashboardError,
    DashboardHTTPError,
    DashboardTransportError,
)


class TestRequests:
    """测试普通请求."""

    async def test_get_state_parses_camel_case(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """快照字段按 camelCase 解析."""
        server.route(
            "GET",
            "/api/state",
            {
                "sourceOrg": "src",
                "targetHost": "github.com",
                "repos": {
                    "a": {
                        "name": "a",
                        "status": "syncing",
                        "startedAt": "2025-01-15T11:59:50Z",
                        "metadata": {"size": 10, "primaryLanguage": "Go"},
                    }
                },
            },
        )
        snapshot = await dashboard_client.get_state()

        assert snapshot.source_org == "src"
        record = snapshot.repos["a"]
        assert record.started_at is not None
        assert record.metadata.primary_language == "Go"

    async def test_http_error_carries_status(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """非 2xx 响应转换为 DashboardHTTPError."""
        server.route("GET", "/api/state", {"error": "down"}, status_code=503)
        with pytest.raises(DashboardHTTPError) as exc_info:
            await dashboard_client.get_state()
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "down"

    async def test_malformed_payload(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """格式错误的响应转换为 DashboardError."""
        server.route("GET", "/api/syncs", {"not": "a list"})
        with pytest.raises(DashboardError):
            await dashboard_client.list_syncs()

    async def test_transport_error(self) -> None:
        """网络错误转换为 DashboardTransportError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = DashboardClient(
            DashboardConfig(base_url=SERVER_URL), transport=httpx.MockTransport(refuse)
        )
        with pytest.raises(DashboardTransportError):
            await client.get_state()
        await client.close()

    async def test_retry_application_error(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """{success: false} 转换为 DashboardApplicationError."""
        server.route(
            "POST", "/api/repos/my repo/retry", {"success": False, "error": "locked"}
        )
        with pytest.raises(DashboardApplicationError, match="locked"):
            await dashboard_client.retry_repo("my repo")

    async def test_worker_endpoints(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """Worker 端点按类型拼接."""
        server.route("POST", "/api/migration-worker/stop", {"success": True})
        result = await dashboard_client.request_worker_action("migration", "stop")
        assert result.success is True


class TestSettingsRequests:
    """测试设置同步请求."""

    async def test_comparison_error_body(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """只有 error 的响应体视为业务错误."""
        server.route("GET", "/api/syncs/s1/settings", {"error": "token expired"})
        with pytest.raises(DashboardApplicationError, match="token expired"):
            await dashboard_client.get_settings_comparison("s1")

    async def test_apply_sends_selected_keys(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """应用请求体为 {settings: [...]}."""
        server.route(
            "POST",
            "/api/syncs/s1/settings/apply",
            {"success": False, "applied": ["a"], "failed": [{"key": "b", "error": "403"}]},
        )
        result = await dashboard_client.apply_settings("s1", ["a", "b"])

        request = server.calls("POST", "/api/syncs/s1/settings/apply")[0]
        assert json.loads(request.read()) == {"settings": ["a", "b"]}
        assert result.applied == ["a"]
        assert result.failed[0].key == "b"


class TestEventStream:
    """测试 SSE 解析."""

    async def test_parses_events(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """解析 state 与 heartbeat 事件，忽略注释行，多行 data 合并."""
        body = (
            b": comment\n"
            b"event: heartbeat\ndata: \n\n"
            b"event: state\ndata: {\"repos\":\ndata: {}}\n\n"
            b"data: plain\n\n"
        )
        server.route(
            "GET",
            "/events",
            handler=lambda request: httpx.Response(
                200, headers={"content-type": "text/event-stream"}, content=body
            ),
        )
        opened: list[bool] = []

        events = [
            event
            async for event in dashboard_client.stream_events(
                on_open=lambda: opened.append(True)
            )
        ]

        assert opened == [True]
        assert [(e.event, e.data) for e in events] == [
            ("heartbeat", ""),
            ("state", '{"repos":\n{}}'),
            ("message", "plain"),
        ]
        request = server.calls("GET", "/events")[0]
        assert request.headers["accept"] == "text/event-stream"

    async def test_stream_http_error(
        self, server: FakeMigrationServer, dashboard_client: DashboardClient
    ) -> None:
        """事件流返回错误状态码时抛出 DashboardHTTPError."""
        server.route("GET", "/events", status_code=500, json_body={})
        with pytest.raises(DashboardHTTPError):
            async for _ in dashboard_client.stream_events():
                pass
