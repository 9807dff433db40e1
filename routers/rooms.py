from fastapi import APIRouter, HTTPException
from typing import List

from registry import normalize_room_name, room_registry
from schemas.rooms import RoomDetailsResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=List[RoomSummary])
async def list_rooms():
    rooms = room_registry.rooms()
    logger.debug(f"Listing {len(rooms)} rooms")
    return [RoomSummary(room=name, member_count=len(members)) for name, members in sorted(rooms.items())]


@rooms_router.get("/{room}", response_model=RoomDetailsResponse)
async def get_room_details(room: str):
    """
    Get the current membership of a room.

    Rooms only exist while at least one connection is in them, so an empty or
    never-joined room is a 404.
    """
    name = normalize_room_name(room)
    members = room_registry.members(name) if name else frozenset()
    if not members:
        logger.info(f"Room details failed: Room {room} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room=name,
        members=sorted(members),
        member_count=len(members),
    )
