import threading
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set

from logging_config import get_logger

logger = get_logger(__name__)


def normalize_room_name(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ConnectionState:
    connection_id: str
    room: Optional[str] = None


@dataclass(frozen=True)
class Departure:
    # remaining members must be told about it
    room: str
    connection_id: str
    room_deleted: bool


@dataclass(frozen=True)
class JoinResult:
    room: str
    introduction: List[str]
    departure: Optional[Departure] = None
    already_member: bool = False


class RoomRegistry:
    """In-memory room membership. Both tables are only touched under `_lock`."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: Dict[str, Set[str]] = {}
        self._connections: Dict[str, ConnectionState] = {}

    def register(self, connection_id: str):
        with self._lock:
            state = self._connections.get(connection_id)
            if state is None:
                state = ConnectionState(connection_id=connection_id)
                self._connections[connection_id] = state
                logger.debug(f"Registered connection {connection_id}")
            return state

    def join(self, connection_id: str, room: str):
        # room is already normalized and non-empty
        with self._lock:
            state = self._connections.setdefault(connection_id, ConnectionState(connection_id=connection_id))
            departure = None
            already_member = state.room == room
            if state.room is not None and not already_member:
                departure = self._remove_member(state, state.room)

            members = self._rooms.get(room)
            if members is None:
                members = set()
                self._rooms[room] = members
                logger.info(f"Room {room} created")
            introduction = [member for member in members if member != connection_id]
            members.add(connection_id)
            state.room = room
            logger.debug(f"Connection {connection_id} in room {room} ({len(members)} members)")
            return JoinResult(room=room, introduction=introduction, departure=departure, already_member=already_member)

    def leave(self, connection_id: str, room: str):
        with self._lock:
            state = self._connections.get(connection_id)
            members = self._rooms.get(room)
            if members is None or connection_id not in members:
                logger.debug(f"Connection {connection_id} is not in room {room}, nothing to leave")
                return None
            if state is None:
                # Member set and connection table disagree; repair the set.
                state = ConnectionState(connection_id=connection_id, room=room)
            return self._remove_member(state, room)

    def discard(self, connection_id: str):
        """Forget a connection entirely, leaving its recorded room if it has one."""
        with self._lock:
            state = self._connections.pop(connection_id, None)
            if state is None:
                logger.debug(f"Connection {connection_id} already discarded")
                return None
            departure = None
            if state.room is not None:
                departure = self._remove_member(state, state.room)
            logger.debug(f"Discarded state for connection {connection_id}")
            return departure

    def _remove_member(self, state: ConnectionState, room: str):
        # Caller holds the lock.
        members = self._rooms.get(room)
        removed = members is not None and state.connection_id in members
        room_deleted = False
        if removed:
            members.discard(state.connection_id)
            if not members:
                del self._rooms[room]
                room_deleted = True
                logger.info(f"Room {room} is empty, deleted")
        if state.room == room:
            state.room = None
        if not removed:
            return None
        logger.debug(f"Connection {state.connection_id} removed from room {room}")
        return Departure(room=room, connection_id=state.connection_id, room_deleted=room_deleted)

    def room_of(self, connection_id: str):
        with self._lock:
            state = self._connections.get(connection_id)
            return state.room if state else None

    def is_member(self, room: str, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._rooms.get(room, ())

    def members(self, room: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._rooms.get(room, ()))

    def rooms(self) -> Dict[str, FrozenSet[str]]:
        with self._lock:
            return {name: frozenset(members) for name, members in self._rooms.items()}

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)


room_registry = RoomRegistry()
