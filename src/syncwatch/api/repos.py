"""仓库状态 API."""

from dataclasses import asdict, replace
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from syncwatch.core.pipeline import SORT_COLUMNS, build_view
from syncwatch.core.runtime import DashboardRuntime, get_runtime

router = APIRouter(prefix="/dashboard", tags=["repos"])


@router.get("/repos")
async def list_repos(
    status: list[str] | None = Query(None, description="状态过滤（可重复）"),
    q: str | None = Query(None, description="名称过滤（不区分大小写的子串）"),
    sort: str | None = Query(None, description="排序列"),
    direction: Literal["asc", "desc"] | None = Query(None, description="排序方向"),
    sync: str | None = Query(None, description="按同步配置过滤"),
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """获取过滤排序后的仓库列表（未指定的参数沿用当前视图状态）."""
    if sort is not None and sort not in SORT_COLUMNS:
        raise HTTPException(status_code=400, detail=f"不支持的排序列: {sort}")

    state = replace(runtime.view_state)
    if status is not None:
        state.status_filter = set(status)
    if q is not None:
        state.set_name_filter(q)
    if sort is not None:
        state.sort_column = sort
    if direction is not None:
        state.sort_direction = direction
    if sync is not None:
        state.set_sync_filter(sync)

    view = build_view(runtime.projection, state)
    return {
        "has_data": view.has_data,
        "empty": view.empty,
        "message": view.message,
        "sort": {"column": state.sort_column, "direction": state.sort_direction},
        "rows": [asdict(row) for row in view.rows],
    }


@router.get("/stats")
async def get_stats(
    sync: str | None = Query(None, description="按同步配置统计"),
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, int]:
    """按状态统计仓库数量（不含已删除）."""
    if sync:
        return runtime.projection.compute_stats(sync_id=sync).as_dict()
    return runtime.projection.stats.as_dict()


@router.get("/summary")
async def get_summary(
    sync: str | None = Query(None, description="按同步配置汇总"),
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, str]:
    """汇总统计（同步时间下限、总大小、总耗时、估算值）."""
    if sync:
        return runtime.projection.compute_summary(sync).display()
    return runtime.projection.summary.display()


@router.get("/repos/{name}")
async def get_repo_details(
    name: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """仓库详情."""
    details = runtime.repo_actions.repo_details(name)
    if not details:
        raise HTTPException(status_code=404, detail="仓库不存在")
    return asdict(details)


@router.get("/repos/{name}/error")
async def get_repo_error(
    name: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, str]:
    """失败仓库的错误信息."""
    return {
        "title": f"Error Details - {name}",
        "message": runtime.repo_actions.view_error(name),
    }


@router.get("/repos/{name}/logs")
async def get_repo_logs(
    name: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """迁移日志（缺失时自动请求下载）."""
    return asdict(await runtime.repo_actions.view_logs(name))


@router.post("/repos/{name}/retry")
async def retry_repo(
    name: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, str]:
    """请求重试仓库迁移."""
    notice = await runtime.repo_actions.retry_repo(name)
    return asdict(notice)
