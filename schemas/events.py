from pydantic import BaseModel, Field
from typing import Any, List


class EventMessage(BaseModel):
    """One WebSocket text frame: {"event": ..., "args": [...]}, both directions."""
    event: str
    args: List[Any] = Field(default_factory=list)

    def arg(self, index: int, default: Any = None) -> Any:
        return self.args[index] if index < len(self.args) else default

    def object_arg(self, index: int) -> dict:
        # anything that is not an object counts as an empty one
        value = self.arg(index)
        return value if isinstance(value, dict) else {}


# room is coerced by the relay; name and socketId pass through as sent
class AnnouncePayload(BaseModel):
    room: Any = None
    name: Any = None


class IdentityRequestPayload(BaseModel):
    room: Any = None
    socketId: Any = None


class Announcement(BaseModel):
    socketId: str
    name: Any = None
