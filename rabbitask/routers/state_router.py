"""WebSocket feed of client-state changes (tasks, oversee, view, modals)."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger("rabbitask.routers.state")

router = APIRouter(tags=["State"])


@router.websocket("/ws/state")
async def state_feed(ws: WebSocket):
    """Send a snapshot of every channel on connect, then each change as it happens."""
    manager = ws.app.state.ws_manager
    broadcaster = ws.app.state.broadcaster
    await manager.connect(ws)
    try:
        await broadcaster.send_snapshot(ws)
        while True:
            # Clients only listen; incoming text keeps the connection alive.
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(ws)
