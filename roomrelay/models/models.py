# roomrelay/models/models.py
from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ValidationError


class MessageKind(str, Enum):
    ALERT = "alert"
    LOCATION = "location"
    UNKNOWN = "unknown"


class MessageEnvelope(BaseModel):
    """
    One application frame exchanged inside a room.

    Wire format (JSON object, field order irrelevant):
        {"room_id": "...", "user_id": "...", "type": "alert", "content": "..."}

    ``content`` is the only payload field read; a ``message`` field is
    ignored like any other unknown key.
    """

    room_id: str = ""
    user_id: str = ""
    type: str = ""
    content: str = ""

    @property
    def kind(self) -> MessageKind:
        if self.type == MessageKind.ALERT.value:
            return MessageKind.ALERT
        if self.type == MessageKind.LOCATION.value:
            return MessageKind.LOCATION
        return MessageKind.UNKNOWN


def parse_envelope(frame: Union[str, bytes]) -> Optional[MessageEnvelope]:
    """Decode a raw frame, or return None if it is not a valid envelope."""
    try:
        return MessageEnvelope.model_validate_json(frame)
    except ValidationError:
        return None


class CreateRoomRequest(BaseModel):
    password: Optional[str] = None


class CreateRoomResponse(BaseModel):
    room_id: str
    join_url: str


class NotificationResponse(BaseModel):
    status: str
    room_id: str
