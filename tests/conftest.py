"""测试配置和 fixtures."""

import json
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from syncwatch.config import Settings
from syncwatch.core.client import DashboardClient, DashboardConfig
from syncwatch.core.runtime import DashboardRuntime, get_runtime
from syncwatch.main import app
from syncwatch.models.repo import DashboardSnapshot, RepoSyncRecord

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)
SERVER_URL = "http://migrate.test"

Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def make_record(name: str, status: str = "synced", **kwargs: Any) -> RepoSyncRecord:
    """创建测试用的仓库记录."""
    return RepoSyncRecord(name=name, status=status, **kwargs)


def make_snapshot(*records: RepoSyncRecord, **kwargs: Any) -> DashboardSnapshot:
    """用记录列表创建快照."""
    return DashboardSnapshot(repos={record.name: record for record in records}, **kwargs)


def sse_body(*events: tuple[str, Any]) -> bytes:
    """把 (event, data) 列表编码为 SSE 响应体."""
    chunks = []
    for event, data in events:
        payload = data if isinstance(data, str) else json.dumps(data)
        chunks.append(f"event: {event}\ndata: {payload}\n\n")
    return "".join(chunks).encode()


class FakeMigrationServer:
    """基于 httpx.MockTransport 的迁移服务端."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler | httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def route(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status_code: int = 200,
        handler: Handler | None = None,
    ) -> None:
        """注册一个端点（固定 JSON 响应或自定义处理函数）."""
        if handler is not None:
            self.routes[(method, path)] = handler
        else:
            self.routes[(method, path)] = httpx.Response(status_code, json=json_body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        """某个端点收到的请求."""
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path == path
        ]

    def handle(
        self, request: httpx.Request
    ) -> httpx.Response | Awaitable[httpx.Response]:
        self.requests.append(request)
        target = self.routes.get((request.method, request.url.path))
        if target is None:
            return httpx.Response(404, json={"error": "Not found"})
        if isinstance(target, httpx.Response):
            # 每次返回新的响应对象
            return httpx.Response(
                target.status_code,
                content=target.content,
                headers=target.headers,
            )
        return target(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def now() -> datetime:
    """固定的当前时间."""
    return NOW


@pytest.fixture
def server() -> FakeMigrationServer:
    """模拟的迁移服务端."""
    return FakeMigrationServer()


@pytest_asyncio.fixture
async def dashboard_client(
    server: FakeMigrationServer,
) -> AsyncGenerator[DashboardClient, None]:
    """连接模拟服务端的 API 客户端."""
    client = DashboardClient(DashboardConfig(base_url=SERVER_URL), transport=server.transport)
    yield client
    await client.close()


@pytest.fixture
def sample_snapshot() -> DashboardSnapshot:
    """三个可见仓库加一个已删除仓库."""
    return make_snapshot(
        make_record(
            "alpha",
            "synced",
            started_at=NOW - timedelta(minutes=10),
            ended_at=NOW - timedelta(minutes=8),
            elapsed_seconds=120,
            last_update=NOW - timedelta(minutes=8),
            metadata={"size": 2048},
        ),
        make_record(
            "beta",
            "failed",
            error_message="auth error",
            last_update=NOW - timedelta(minutes=5),
        ),
        make_record(
            "gamma",
            "syncing",
            started_at=NOW - timedelta(seconds=10),
            last_update=NOW - timedelta(seconds=10),
        ),
        make_record("zombie", "deleted", last_update=NOW),
        source_org="src-org",
        source_host="github.example.com",
        target_org="dst-org",
        target_host="github.com",
    )


@pytest.fixture
def test_settings() -> Settings:
    """测试配置（关闭事件流）."""
    return Settings(dashboard_url=SERVER_URL, live_updates_enabled=False)


@pytest_asyncio.fixture
async def runtime(
    server: FakeMigrationServer, test_settings: Settings
) -> AsyncGenerator[DashboardRuntime, None]:
    """连接模拟服务端的运行时容器."""
    rt = DashboardRuntime(test_settings, transport=server.transport)
    yield rt
    await rt.client.close()


@pytest_asyncio.fixture
async def client(runtime: DashboardRuntime) -> AsyncGenerator[AsyncClient, None]:
    """创建测试用的 HTTP 客户端."""
    app.dependency_overrides[get_runtime] = lambda: runtime
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


CATEGORIES = [
    {
        "id": "general",
        "name": "General",
        "description": "Organization profile",
        "settings": [
            {"key": "has_projects", "label": "Projects", "type": "boolean"},
            {"key": "default_branch", "label": "Default branch", "type": "string"},
            {"key": "plan", "label": "Plan", "type": "readonly"},
            {"key": "old_flag", "label": "Old flag", "deprecated": True},
        ],
    },
    {
        "id": "security",
        "name": "Security",
        "settings": [{"key": "two_factor", "label": "Two-factor"}],
    },
]

COMPARISON = {
    "syncId": "s1",
    "syncName": "Main sync",
    "sourceOrg": "src-org",
    "targetOrg": "dst-org",
    "sourceHost": "github.example.com",
    "targetHost": "github.com",
    "sourceEnterprise": "src-ent",
    "settings": [
        # isEqual 由本地重新计算
        {"key": "has_projects", "sourceValue": True, "targetValue": False, "isEqual": True, "canSync": True},
        {"key": "default_branch", "sourceValue": "main", "targetValue": "main", "canSync": True},
        {"key": "plan", "sourceValue": "free", "targetValue": "team", "canSync": True},
        {"key": "old_flag", "sourceValue": True, "targetValue": 1, "canSync": True},
        {"key": "two_factor", "sourceValue": True, "targetValue": True, "canSync": True},
    ],
    "enterpriseSettingsComparison": [
        {"key": "secret_scanning", "label": "Secret scanning", "sourceValue": "enabled", "targetValue": "not_set"},
    ],
    "copilotSettingsComparison": [
        {"key": "public_code", "label": "Public code", "sourceValue": "unconfigured", "targetValue": "unconfigured"},
    ],
    "warnings": ["Could not read webhooks for dst-org"],
    "sourceCopilotSeats": {"total": 10, "activeThisCycle": 3},
    "sourceTeamsCount": 4,
    "targetTeamsCount": 2,
}

SYNCS = [
    {"id": "s1", "name": "Main sync", "source": {"org": "src-org"}, "target": {"org": "dst-org"}},
    {"id": "s2", "name": "Old sync", "archived": True},
]


def register_settings_routes(server: FakeMigrationServer) -> None:
    """注册设置同步相关端点."""
    server.route("GET", "/api/settings/categories", CATEGORIES)
    server.route("GET", "/api/syncs", SYNCS)
    server.route("GET", "/api/syncs/s1/settings", COMPARISON)
