# roomrelay/api/routes/rooms.py

from fastapi import APIRouter, HTTPException, Request, status

from roomrelay.core import state
from roomrelay.models.models import CreateRoomRequest, CreateRoomResponse
from roomrelay.services.room_manager import EmptySecretError, RoomIdGenerationError

router = APIRouter()

# ============================================================================
# ROOM CREATION ENDPOINT
# ============================================================================


def build_join_url(request: Request, room_id: str, password: str) -> str:
    url = request.url_for("join_room", room_id=room_id)
    ws_scheme = "wss" if url.scheme == "https" else "ws"
    return str(url.replace(scheme=ws_scheme).include_query_params(password=password))


@router.post("/rooms", response_model=CreateRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(body: CreateRoomRequest, request: Request):
    """
    Create a new password-protected room.

    Args:
        body: CreateRoomRequest with the room password

    Returns:
        CreateRoomResponse: the new room id and a join URL carrying the
        password; the client appends ``&user_id=<name>``

    Raises:
        HTTPException: 400 if the password is empty, 500 if no room id
        could be generated
    """
    try:
        room_id = await state.room_registry.create_room(body.password)
    except EmptySecretError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RoomIdGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return CreateRoomResponse(
        room_id=room_id,
        join_url=build_join_url(request, room_id, body.password),
    )
