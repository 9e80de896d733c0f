# roomrelay/api/routes/health.py

from fastapi import APIRouter

from roomrelay.core import state

router = APIRouter()


async def count_connections() -> int:
    rooms = await state.room_registry.list_rooms()
    total = 0
    for room in rooms:
        total += await room.member_count()
    return total


@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns:
        dict: status, room count and live connection count
    """
    return {
        "status": "healthy",
        "rooms": await state.room_registry.room_count(),
        "connections": await count_connections(),
    }
