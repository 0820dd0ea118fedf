# app/services/realtime.py
import asyncio
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket

from app.core.logging import logger


class RealtimeNotifier:
    """Fan out tenant events to connected WebSocket clients (single process)"""

    def __init__(self):
        self._connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, tenant_slug: str, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._connections[tenant_slug].add(websocket)
        logger.info(f"Realtime client joined {tenant_slug}")

    async def disconnect(self, tenant_slug: str, websocket: WebSocket):
        async with self._lock:
            sockets = self._connections.get(tenant_slug)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self._connections[tenant_slug]

    def connection_count(self, tenant_slug: str) -> int:
        return len(self._connections.get(tenant_slug, ()))

    async def broadcast(self, tenant_slug: str, event: str, data: Dict[str, Any]):
        async with self._lock:
            sockets = list(self._connections.get(tenant_slug, ()))

        stale = []
        for websocket in sockets:
            try:
                await websocket.send_json({"event": event, "data": data})
            except Exception as e:
                logger.warning(f"Dropping realtime client of {tenant_slug}: {str(e)}")
                stale.append(websocket)

        for websocket in stale:
            await self.disconnect(tenant_slug, websocket)
