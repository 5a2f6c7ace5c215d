"""后台 Worker 状态跟踪 - 三个 Worker 共用同一实现."""

import logging
from dataclasses import dataclass

from syncwatch.core.client import DashboardClient, DashboardError
from syncwatch.models.worker import WorkerStatus

logger = logging.getLogger(__name__)


class WorkerKind:
    """Worker 类型（对应 /api/{kind}-worker 端点）."""

    STATUS = "status"
    MIGRATION = "migration"
    PROGRESS = "progress"

    ALL = (STATUS, MIGRATION, PROGRESS)


@dataclass
class WorkerView:
    """Worker 控件的展示数据."""

    kind: str
    running: bool
    status_text: str
    button_label: str
    button_disabled: bool
    in_progress: int | None = None
    max_concurrent: int | None = None


class WorkerTracker:
    """单个 Worker 的状态轮询与启停控制."""

    def __init__(self, client: DashboardClient, kind: str) -> None:
        if kind not in WorkerKind.ALL:
            msg = f"未知的 Worker 类型: {kind}"
            raise ValueError(msg)
        self.client = client
        self.kind = kind
        self.status = WorkerStatus()
        self.busy = False  # 请求期间禁用控件
        self.last_error: str | None = None

    async def poll(self) -> WorkerStatus | None:
        """拉取 Worker 当前状态并整体替换，失败时保留上一次状态."""
        try:
            status = await self.client.get_worker_status(self.kind)
        except DashboardError as e:
            self.last_error = str(e)
            logger.warning(f"获取 {self.kind} worker 状态失败: {e}")
            return None

        self.status = status
        self.last_error = None
        return status

    async def start(self) -> bool:
        """请求启动 Worker."""
        return await self._transition("start")

    async def stop(self) -> bool:
        """请求停止 Worker."""
        return await self._transition("stop")

    async def toggle(self) -> bool:
        """根据当前状态启动或停止."""
        return await self._transition("stop" if self.status.running else "start")

    async def _transition(self, action: str) -> bool:
        """发送启停请求；成功后重新轮询，失败时保留原状态."""
        if self.busy:
            logger.info(f"{self.kind} worker 正在处理请求，忽略 {action}")
            return False

        self.busy = True
        try:
            result = await self.client.request_worker_action(self.kind, action)
            if not result.success:
                self.last_error = result.message or f"Failed to {action} worker"
                logger.warning(f"{self.kind} worker {action} 失败: {self.last_error}")
                return False

            await self.poll()
            return True
        except DashboardError as e:
            self.last_error = str(e)
            logger.warning(f"{self.kind} worker {action} 请求失败: {e}")
            return False
        finally:
            self.busy = False

    def view(self) -> WorkerView:
        """生成控件展示数据."""
        if self.status.running:
            status_text = self.status.current_repo or "Running (idle)"
            button_label = "Stop"
        else:
            status_text = "Stopped"
            button_label = "Start"

        return WorkerView(
            kind=self.kind,
            running=self.status.running,
            status_text=status_text,
            button_label=button_label,
            button_disabled=self.busy,
            in_progress=self.status.in_progress,
            max_concurrent=self.status.max_concurrent,
        )


def create_worker_trackers(client: DashboardClient) -> dict[str, WorkerTracker]:
    """为三个 Worker 各创建一个跟踪器."""
    return {kind: WorkerTracker(client, kind) for kind in WorkerKind.ALL}
