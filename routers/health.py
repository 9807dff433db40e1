from fastapi import APIRouter

from connections import connection_manager
from registry import room_registry
from schemas.rooms import HealthResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="ok",
        connections=connection_manager.connection_count(),
        rooms=len(room_registry.rooms()),
    )
