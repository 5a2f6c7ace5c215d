"""组织设置对比与同步 API."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from syncwatch.core.runtime import DashboardRuntime, get_runtime
from syncwatch.core.selection import ApplyConfirmation

router = APIRouter(prefix="/dashboard", tags=["settings"])


class ApplyRequest(BaseModel):
    """应用设置请求."""

    confirmed: bool = False


def _comparison_payload(runtime: DashboardRuntime) -> dict[str, Any]:
    view = runtime.comparison.view(runtime.selection.selected)
    return {
        **asdict(view),
        "selected_keys": runtime.selection.ordered_selection(),
        "applying": runtime.selection.applying,
    }


@router.get("/syncs")
async def list_syncs(
    refresh: bool = False,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """可选的同步配置（不含已归档）."""
    if refresh or not runtime.comparison.syncs:
        await runtime.comparison.load_syncs()
    return {
        "items": [
            {
                "id": sync.id,
                "name": sync.name,
                "label": f"{sync.name} ({sync.source.org} → {sync.target.org})",
            }
            for sync in runtime.comparison.active_syncs()
        ],
        "selected": runtime.comparison.sync_id,
    }


@router.get("/settings")
async def get_comparison(
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """当前设置对比."""
    return _comparison_payload(runtime)


@router.post("/settings/refresh")
async def refresh_comparison(
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """重新加载当前同步配置的对比."""
    await runtime.comparison.refresh()
    return _comparison_payload(runtime)


@router.post("/settings/selection/all")
async def select_all(
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """选中所有可同步且不同的设置."""
    runtime.selection.select_all_different()
    return {"selected_keys": runtime.selection.ordered_selection()}


@router.delete("/settings/selection")
async def clear_selection(
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """清空选择."""
    runtime.selection.clear_selection()
    return {"selected_keys": []}


@router.post("/settings/selection/{key}")
async def toggle_selection(
    key: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """切换一个设置的选择（不可选的设置不会被加入）."""
    selected = runtime.selection.toggle_setting(key)
    return {
        "key": key,
        "selected": selected,
        "selected_keys": runtime.selection.ordered_selection(),
    }


@router.post("/settings/apply")
async def apply_settings(
    request: ApplyRequest,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """
    应用选中的设置.

    confirmed 为 False 时只返回确认内容，不发送任何请求.
    """
    prompts: list[ApplyConfirmation] = []

    def confirm(confirmation: ApplyConfirmation) -> bool:
        prompts.append(confirmation)
        return request.confirmed

    outcome = await runtime.selection.apply(confirm)
    confirmation = prompts[0] if prompts else None
    return {
        "outcome": outcome.kind,
        "notice": asdict(outcome.notice) if outcome.notice else None,
        "applied": outcome.applied,
        "failed": [item.model_dump() for item in outcome.failed],
        "confirmation": {
            "count": confirmation.count,
            "source_org": confirmation.source_org,
            "target_org": confirmation.target_org,
            "keys": confirmation.keys,
            "message": confirmation.message,
        }
        if confirmation
        else None,
        "comparison": _comparison_payload(runtime),
    }


@router.post("/settings/{sync_id}/load")
async def load_comparison(
    sync_id: str,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """选择同步配置并加载设置对比."""
    await runtime.comparison.load_categories()
    await runtime.comparison.select_sync(sync_id)
    return _comparison_payload(runtime)
