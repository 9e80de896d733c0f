# roomrelay/api/routes/metrics.py
from fastapi import APIRouter

from roomrelay.api.routes.health import count_connections
from roomrelay.core import state

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Relay traffic and capacity metrics.

    Counters are in memory and reset on restart.

    Example Response:
        {
            "uptime_hours": 1.5,
            "frames_received": 120,
            "messages_per_second": 0.02,
            "alerts": 40,
            "location_updates": 75,
            "unknown_messages": 3,
            "invalid_frames": 2,
            "notifications": 5,
            "broadcasts": 45,
            "deliveries": 130,
            "evictions": 1,
            "total_rooms": 4,
            "concurrent_connections": 9
        }
    """
    metrics = state.metrics
    uptime_seconds = metrics.uptime_seconds()

    if uptime_seconds > 0:
        messages_per_second = metrics.frames_received / uptime_seconds
    else:
        messages_per_second = 0

    return {
        # Statistics
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "frames_received": metrics.frames_received,
        "messages_per_second": round(messages_per_second, 2),

        # Inbound frames by kind
        "alerts": metrics.alerts,
        "location_updates": metrics.location_updates,
        "unknown_messages": metrics.unknown_messages,
        "invalid_frames": metrics.invalid_frames,
        "notifications": metrics.notifications,

        # Fan-out
        "broadcasts": metrics.broadcasts,
        "deliveries": metrics.deliveries,
        "evictions": metrics.evictions,

        # Capacity
        "total_rooms": await state.room_registry.room_count(),
        "concurrent_connections": await count_connections(),
    }
