"""后台 Worker 状态模型."""

from pydantic import Field

from syncwatch.models.repo import CamelModel


class WorkerStatus(CamelModel):
    """Worker 当前状态（每次轮询整体替换）."""

    running: bool = False
    current_repo: str | None = None
    in_progress: int | None = Field(default=None, description="迁移中的仓库数")
    max_concurrent: int | None = Field(default=None, description="最大并发数")


class WorkerActionResult(CamelModel):
    """启动/停止请求结果."""

    success: bool = False
    message: str | None = None
