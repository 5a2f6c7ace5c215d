"""实时推送 WebSocket."""

import asyncio

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from syncwatch.core.runtime import DashboardRuntime, get_runtime

router = APIRouter(prefix="/dashboard", tags=["ws"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    runtime: DashboardRuntime = Depends(get_runtime),
) -> None:
    """WebSocket 端点，推送快照统计、Worker 状态和实时耗时."""
    await websocket.accept()
    runtime.notifier.register(websocket)

    try:
        # 发送当前状态
        await websocket.send_json(
            {
                "type": "connected",
                "data": {
                    "has_data": runtime.projection.has_data,
                    "channel": runtime.channel.state,
                    "stats": runtime.projection.stats.as_dict(),
                    "summary": runtime.projection.summary.display(),
                    "workers": runtime.worker_views(),
                },
            }
        )

        # 保持连接，等待消息或断开
        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=30.0,
                )
                if data == "ping":
                    await websocket.send_text("pong")
            except TimeoutError:
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break

    except WebSocketDisconnect:
        pass
    finally:
        runtime.notifier.unregister(websocket)
