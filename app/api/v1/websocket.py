# app/api/v1/websocket.py
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.realtime import RealtimeNotifier

router = APIRouter()


@router.websocket("/ws/{tenant_slug}")
async def tenant_events(websocket: WebSocket, tenant_slug: str):
    """Push image:approved, image:liked, image:unliked and image:commented events for one tenant"""
    notifier: RealtimeNotifier = websocket.app.state.notifier
    await notifier.connect(tenant_slug, websocket)
    try:
        while True:
            # Clients only listen; inbound frames keep the connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await notifier.disconnect(tenant_slug, websocket)
