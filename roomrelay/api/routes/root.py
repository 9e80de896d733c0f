# roomrelay/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "message": "Room Relay - real-time room broadcast",
        "version": "1.0",
        "message_types": ["alert", "location"],
        "endpoints": {
            "create_room": "POST /rooms",
            "join_room": "WS /rooms/{room_id}/join?password=...&user_id=...",
            "produce_notification": "POST /produce-notif",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
