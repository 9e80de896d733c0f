# roomrelay/api/websocket.py

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, status
from fastapi.responses import JSONResponse

from roomrelay.core import state
from roomrelay.services.connection_manager import ClientConnection, ConnectionSession

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET JOIN ENDPOINT
# ============================================================================


async def reject(websocket: WebSocket, status_code: int, detail: str) -> None:
    """
    Refuse the handshake with an HTTP status, before the upgrade.

    Falls back to a policy-violation close when the server does not support
    the WebSocket denial response extension.
    """
    if "websocket.http.response" in websocket.scope.get("extensions", {}):
        await websocket.send_denial_response(
            JSONResponse(status_code=status_code, content={"detail": detail})
        )
    else:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=detail)


@router.websocket("/rooms/{room_id}/join", name="join_room")
async def join_room(
    websocket: WebSocket,
    room_id: str,
    password: Optional[str] = None,
    user_id: Optional[str] = None,
):
    """
    Join a room over a persistent WebSocket.

    Handshake:
    ==========
        ws://<host>/rooms/<room_id>/join?password=<secret>&user_id=<name>

        400  user_id missing (checked before anything else)
        404  room does not exist
        403  wrong password

    Client -> Server:
    =================
        {"room_id": "...", "user_id": "...", "type": "alert", "content": "..."}
            Forwarded verbatim to every member of the room, sender included.
        {"type": "location", "content": "..."}
            Logged by the relay only.

    Server -> Client:
    =================
        {"type": "joined", "room_id": "...", "user_id": "..."}
            Sent once, right after registration, always the first frame.
        Alert frames from any member, and producer notifications.
    """
    if not user_id:
        await reject(websocket, status.HTTP_400_BAD_REQUEST, "User ID is required")
        return

    room = await state.room_registry.get_room(room_id)
    if room is None:
        await reject(websocket, status.HTTP_404_NOT_FOUND, "Room does not exist")
        return

    if not room.check_secret(password):
        logger.warning("Join rejected: invalid password for room %s (user %s)", room_id, user_id)
        await reject(websocket, status.HTTP_403_FORBIDDEN, "Invalid password")
        return

    try:
        await websocket.accept()
    except Exception as e:
        logger.error("Failed to upgrade to WebSocket for %s in room %s: %s", user_id, room_id, e)
        return

    logger.info("✓ User %s connected to room %s", user_id, room_id)

    session = ConnectionSession(
        room=room,
        connection=ClientConnection(websocket, user_id),
        dispatcher=state.dispatcher,
        metrics=state.metrics,
    )
    await session.run()
