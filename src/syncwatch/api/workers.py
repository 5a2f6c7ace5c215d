"""后台 Worker API."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from syncwatch.core.runtime import DashboardRuntime, get_runtime

router = APIRouter(prefix="/dashboard/workers", tags=["workers"])


@router.get("")
async def list_workers(
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, dict[str, Any]]:
    """三个 Worker 的当前状态."""
    return runtime.worker_views()


@router.post("/{kind}/toggle")
async def toggle_worker(
    kind: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """启动或停止 Worker（请求进行中时拒绝）."""
    tracker = runtime.workers.get(kind)
    if not tracker:
        raise HTTPException(status_code=404, detail="Worker 不存在")

    if tracker.busy:
        return {"success": False, "message": "请求处理中", "worker": asdict(tracker.view())}

    success = await tracker.toggle()
    return {
        "success": success,
        "message": None if success else tracker.last_error,
        "worker": asdict(tracker.view()),
    }
