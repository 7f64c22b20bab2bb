"""WebSocket connection manager forwarding client-state changes to the UI."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Set, Union

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from .app_state import AppContainer
from .state_channel import ChannelView, DerivedChannel, Subscription

logger = logging.getLogger("rabbitask.ws_manager")


def _message(event_type: str, data: Any) -> str:
    return json.dumps({"event": event_type, "data": jsonable_encoder(data)}, default=str)


class ConnectionManager:
    """Tracks active WebSocket connections and broadcasts events."""

    def __init__(self):
        self._connections: List[WebSocket] = []

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self._connections.append(ws)
        logger.info("WS client connected (%d total)", len(self._connections))

    def disconnect(self, ws: WebSocket):
        if ws in self._connections:
            self._connections.remove(ws)
        logger.info("WS client disconnected (%d total)", len(self._connections))

    async def send(self, ws: WebSocket, event_type: str, data: Any):
        await ws.send_text(_message(event_type, data))

    async def broadcast(self, event_type: str, data: Any):
        """Send a JSON event to every connected client."""
        message = _message(event_type, data)
        dead: List[WebSocket] = []
        for ws in self._connections:
            try:
                await ws.send_text(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)


def state_channels(container: AppContainer) -> Dict[str, Union[ChannelView, DerivedChannel]]:
    """Channels pushed to WebSocket clients, keyed by event name."""
    tasks = container.task_state
    return {
        "categories": tasks.filtered_categories,
        "loading": tasks.loading,
        "error": tasks.error.map(lambda exc: str(exc) if exc is not None else None),
        "search_query": tasks.search_query,
        "viewed_user": container.facade.viewed_user,
        "overseeing_user_name": container.facade.overseeing_user_name,
        "view_mode": container.views.current_view,
        "modal_state": container.modals.modal_state,
    }


class StateBroadcaster:
    """Subscribes to the container's channels and broadcasts every change."""

    def __init__(self, container: AppContainer, manager: ConnectionManager):
        self.manager = manager
        self.channels = state_channels(container)
        self._subscriptions: List[Subscription] = []
        self._pending: Set[asyncio.Task] = set()

    def start(self) -> None:
        for event_type, channel in self.channels.items():
            self._subscriptions.append(
                channel.subscribe(self._forwarder(event_type), replay=False)
            )

    def _forwarder(self, event_type: str):
        def forward(value: Any) -> None:
            if not self.manager.connection_count:
                return
            task = asyncio.get_running_loop().create_task(self.manager.broadcast(event_type, value))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return forward

    async def send_snapshot(self, ws: WebSocket) -> None:
        """Send the current value of every channel to a newly connected client."""
        for event_type, channel in self.channels.items():
            await self.manager.send(ws, event_type, channel.value)

    async def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
        for channel in self.channels.values():
            if isinstance(channel, DerivedChannel):
                channel.close()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
