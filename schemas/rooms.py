from pydantic import BaseModel
from typing import List


class RoomSummary(BaseModel):
    room: str
    member_count: int


class RoomDetailsResponse(BaseModel):
    room: str
    members: List[str]
    member_count: int


class HealthResponse(BaseModel):
    status: str
    connections: int
    rooms: int
