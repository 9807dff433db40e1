import asyncio
import threading
import uuid
from typing import Any, Dict, Set

from fastapi import WebSocket

from schemas.events import EventMessage
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Live sockets and named groups. Failed sends are logged and dropped, never retried."""

    def __init__(self):
        self._lock = threading.Lock()
        # Format: {connection_id: websocket}
        self.active_connections: Dict[str, WebSocket] = {}
        # Format: {group_name: {connection_id, ...}}
        self.groups: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        with self._lock:
            self.active_connections[connection_id] = websocket
            count = len(self.active_connections)
        logger.info(f"WebSocket connection {connection_id} accepted ({count} active)")
        return connection_id

    def disconnect(self, connection_id: str):
        """Drop the socket and take it out of every group."""
        with self._lock:
            self.active_connections.pop(connection_id, None)
            for group in [name for name, members in self.groups.items() if connection_id in members]:
                self._leave_group(connection_id, group)
            count = len(self.active_connections)
        logger.info(f"WebSocket connection {connection_id} removed ({count} active)")

    def enter_room(self, connection_id: str, room: str):
        with self._lock:
            self.groups.setdefault(room, set()).add(connection_id)

    def leave_room(self, connection_id: str, room: str):
        with self._lock:
            self._leave_group(connection_id, room)

    def _leave_group(self, connection_id: str, room: str):
        members = self.groups.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.groups[room]

    async def send_to(self, connection_id: str, event: str, *args: Any):
        with self._lock:
            websocket = self.active_connections.get(connection_id)
        if websocket is None:
            logger.warning(f"Dropping {event} for {connection_id}: connection is gone")
            return
        await self._deliver({connection_id: websocket}, EventMessage(event=event, args=list(args)))

    async def send_to_room(self, room: str, event: str, *args: Any):
        with self._lock:
            targets = {
                conn_id: self.active_connections[conn_id]
                for conn_id in self.groups.get(room, ())
                if conn_id in self.active_connections
            }
        if not targets:
            logger.debug(f"No connections in room {room} for {event}")
            return
        logger.debug(f"Broadcasting {event} to {len(targets)} connections in room {room}")
        await self._deliver(targets, EventMessage(event=event, args=list(args)))

    async def _deliver(self, targets: Dict[str, WebSocket], message: EventMessage):
        text = message.model_dump_json()
        conn_ids = list(targets)
        results = await asyncio.gather(
            *(targets[conn_id].send_text(text) for conn_id in conn_ids),
            return_exceptions=True,
        )
        for conn_id, result in zip(conn_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"Error sending {message.event} to connection {conn_id}: {result}")

    def connection_count(self) -> int:
        with self._lock:
            return len(self.active_connections)


connection_manager = ConnectionManager()
