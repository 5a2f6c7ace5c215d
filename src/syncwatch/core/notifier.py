"""WebSocket 推送 - 把快照统计和实时耗时广播给所有连接."""

import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class UpdateNotifier:
    """WebSocket 连接集合与广播."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        """当前连接数."""
        return len(self._connections)

    def register(self, ws: WebSocket) -> None:
        """注册 WebSocket 连接."""
        self._connections.add(ws)

    def unregister(self, ws: WebSocket) -> None:
        """注销 WebSocket 连接."""
        self._connections.discard(ws)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """广播消息到所有 WebSocket 连接，发送失败的连接被移除."""
        if not self._connections:
            return

        data = json.dumps(message, ensure_ascii=False, default=str)
        dead_connections: set[WebSocket] = set()

        for ws in list(self._connections):
            try:
                await ws.send_text(data)
            except Exception:
                dead_connections.add(ws)

        # 清理断开的连接
        if dead_connections:
            logger.info(f"移除 {len(dead_connections)} 个断开的 WebSocket 连接")
        self._connections.difference_update(dead_connections)
