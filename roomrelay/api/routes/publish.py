# roomrelay/api/routes/publish.py
import logging

from fastapi import APIRouter, HTTPException, status

from roomrelay.core import state
from roomrelay.models.models import MessageEnvelope, NotificationResponse

logger = logging.getLogger(__name__)

# ============================================================================
# PRODUCER NOTIFICATION ENDPOINT
# ============================================================================

router = APIRouter()


@router.post("/produce-notif", response_model=NotificationResponse)
async def produce_notification(envelope: MessageEnvelope):
    """
    Inject a message into a room without being a connected client.

    Flow:
        1. Look up envelope.room_id
        2. Serialise the envelope to JSON
        3. Broadcast it to every current member (nobody excluded)

    Delivery is best effort: members whose socket fails are evicted, and the
    caller only learns that the broadcast was attempted.

    Raises:
        HTTPException: 404 if the room does not exist
    """
    room = await state.room_registry.get_room(envelope.room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    state.metrics.notifications += 1
    report = await state.dispatcher.broadcast(room, envelope.model_dump_json())
    logger.info(
        "Notification for room %s delivered to %d, evicted %d",
        room.id, len(report.delivered), len(report.evicted),
    )

    return NotificationResponse(status="Notification sent", room_id=room.id)
