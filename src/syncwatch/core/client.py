"""迁移服务端 API 客户端（HTTP + Server-Sent Events）."""

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from syncwatch.models.repo import DashboardSnapshot, SyncConfigSummary
from syncwatch.models.settings import (
    ApplySettingsResult,
    SettingsCategory,
    SyncConfigComparisonResult,
)
from syncwatch.models.worker import WorkerActionResult, WorkerStatus

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class DashboardConfig:
    """迁移服务端连接配置."""

    base_url: str
    timeout: float = 30.0


@dataclass
class ServerEvent:
    """一条 SSE 事件."""

    event: str
    data: str


class DashboardError(Exception):
    """迁移服务 API 错误（含响应格式错误）."""


class DashboardTransportError(DashboardError):
    """网络或事件流传输失败."""


class DashboardHTTPError(DashboardError):
    """非 2xx 响应."""

    def __init__(
        self, status_code: int, reason: str, message: str | None = None
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.message = message
        super().__init__(message or f"HTTP {status_code} {reason}")


class DashboardApplicationError(DashboardError):
    """服务端返回 {success: false, error} 的业务错误."""


def _error_message(response: httpx.Response) -> str | None:
    """从错误响应体中提取 error / message 字段."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("error") or data.get("message")
        return str(message) if message else None
    return None


class DashboardClient:
    """迁移监控服务端 API 客户端."""

    def __init__(
        self,
        config: DashboardConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=transport)

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """发送请求，把传输错误和非 2xx 响应转换为 DashboardError."""
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            raise DashboardTransportError(str(e)) from e

        if response.is_error:
            raise DashboardHTTPError(
                response.status_code,
                response.reason_phrase,
                _error_message(response),
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

    @staticmethod
    def _parse_list(response: httpx.Response, model: type[ModelT]) -> list[ModelT]:
        try:
            data = response.json()
            if not isinstance(data, list):
                msg = "期望 JSON 数组"
                raise ValueError(msg)
            return [model.model_validate(item) for item in data]
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

    @staticmethod
    def _check_success(response: httpx.Response, default_error: str) -> None:
        """校验 {success, error} 响应."""
        try:
            data = response.json()
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise DashboardApplicationError(error or default_error)

    # ==========================================
    # 仓库状态
    # ==========================================

    async def get_state(self) -> DashboardSnapshot:
        """获取完整状态快照."""
        response = await self._request("GET", "/api/state")
        return self._parse(response, DashboardSnapshot)

    async def retry_repo(self, name: str) -> None:
        """请求服务端重试某个仓库的迁移."""
        response = await self._request("POST", f"/api/repos/{quote(name, safe='')}/retry")
        self._check_success(response, "Failed to retry repo")

    async def get_logs(self, name: str) -> str:
        """获取仓库迁移日志原文."""
        response = await self._request("GET", f"/api/logs/{quote(name, safe='')}")
        return response.text

    async def download_logs(self, name: str) -> None:
        """请求服务端下载迁移日志."""
        response = await self._request(
            "POST", f"/api/logs/{quote(name, safe='')}/download"
        )
        self._check_success(response, "Failed to download logs")

    # ==========================================
    # 后台 Worker
    # ==========================================

    async def get_worker_status(self, kind: str) -> WorkerStatus:
        """获取 Worker 当前状态."""
        response = await self._request("GET", f"/api/{kind}-worker")
        return self._parse(response, WorkerStatus)

    async def request_worker_action(self, kind: str, action: str) -> WorkerActionResult:
        """请求 Worker 启动或停止."""
        response = await self._request("POST", f"/api/{kind}-worker/{action}")
        return self._parse(response, WorkerActionResult)

    # ==========================================
    # 设置同步
    # ==========================================

    async def list_syncs(self) -> list[SyncConfigSummary]:
        """获取同步配置列表."""
        response = await self._request("GET", "/api/syncs")
        return self._parse_list(response, SyncConfigSummary)

    async def get_categories(self) -> list[SettingsCategory]:
        """获取设置分类定义."""
        response = await self._request("GET", "/api/settings/categories")
        return self._parse_list(response, SettingsCategory)

    async def get_settings_comparison(self, sync_id: str) -> SyncConfigComparisonResult:
        """获取源/目标组织的设置对比."""
        response = await self._request(
            "GET", f"/api/syncs/{quote(sync_id, safe='')}/settings"
        )
        try:
            data = response.json()
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

        if isinstance(data, dict) and data.get("error") and "settings" not in data:
            raise DashboardApplicationError(str(data["error"]))
        try:
            return SyncConfigComparisonResult.model_validate(data)
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

    async def apply_settings(
        self, sync_id: str, keys: list[str]
    ) -> ApplySettingsResult:
        """把选中的设置从源组织应用到目标组织."""
        response = await self._request(
            "POST",
            f"/api/syncs/{quote(sync_id, safe='')}/settings/apply",
            json={"settings": keys},
        )
        try:
            data = response.json()
        except ValueError as e:
            msg = f"响应格式错误: {response.url}"
            raise DashboardError(msg) from e

        if isinstance(data, dict) and data.get("error") and "applied" not in data:
            raise DashboardApplicationError(str(data["error"]))
        return self._parse(response, ApplySettingsResult)

    # ==========================================
    # 事件流
    # ==========================================

    async def stream_events(
        self,
        on_open: Callable[[], None] | None = None,
        read_timeout: float | None = None,
    ) -> AsyncIterator[ServerEvent]:
        """
        订阅 /events 事件流，逐条返回事件.

        Args:
            on_open: 连接建立（响应头到达）后的回调
            read_timeout: 两次数据之间的最长等待时间，超时视为连接失效

        Yields:
            解析后的 SSE 事件
        """
        timeout = httpx.Timeout(self.config.timeout, read=read_timeout)
        try:
            async with self._client.stream(
                "GET",
                self._url("/events"),
                headers={"Accept": "text/event-stream"},
                timeout=timeout,
            ) as response:
                if response.is_error:
                    raise DashboardHTTPError(
                        response.status_code, response.reason_phrase
                    )
                if on_open:
                    on_open()

                event_name = "message"
                data_lines: list[str] = []
                async for line in response.aiter_lines():
                    if not line:
                        # 空行表示一条事件结束
                        if data_lines or event_name != "message":
                            yield ServerEvent(event=event_name, data="\n".join(data_lines))
                        event_name = "message"
                        data_lines = []
                        continue
                    if line.startswith(":"):
                        continue

                    field, _, value = line.partition(":")
                    if value.startswith(" "):
                        value = value[1:]
                    if field == "event":
                        event_name = value
                    elif field == "data":
                        data_lines.append(value)
        except httpx.HTTPError as e:
            raise DashboardTransportError(str(e)) from e
