# ws_manager.py
# Keeps websocket subscribers per channel and fans out change notifications.

import json
import logging
from collections import defaultdict
from typing import Dict, Set

from fastapi import WebSocket

log = logging.getLogger(__name__)

DEFAULT_CHANNEL = "global"
THREADS_CHANNEL = "threads"


class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, channel: str = DEFAULT_CHANNEL):
        await websocket.accept()
        self.active_connections[channel].add(websocket)
        log.debug(f"WebSocket subscribed to '{channel}' ({len(self.active_connections[channel])} active)")

    async def disconnect(self, websocket: WebSocket, channel: str = DEFAULT_CHANNEL):
        self.active_connections[channel].discard(websocket)

    def subscriber_count(self, channel: str = DEFAULT_CHANNEL) -> int:
        return len(self.active_connections.get(channel, ()))

    async def broadcast(self, message: str, channel: str = DEFAULT_CHANNEL):
        """Send a text frame to every subscriber of a channel; dead sockets are dropped."""
        stale = []
        for websocket in list(self.active_connections.get(channel, ())):
            try:
                await websocket.send_text(message)
            except Exception as e:
                log.warning(f"Dropping websocket on '{channel}': {e}")
                stale.append(websocket)
        for websocket in stale:
            self.active_connections[channel].discard(websocket)

    async def notify(self, event: str, channel: str = DEFAULT_CHANNEL, **payload):
        await self.broadcast(json.dumps({"event": event, **payload}, default=str), channel=channel)


manager = ConnectionManager()
