# roomrelay/services/room_manager.py

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from roomrelay.core.config import settings

if TYPE_CHECKING:
    from roomrelay.services.connection_manager import ClientConnection

logger = logging.getLogger(__name__)

ROOM_ID_ERROR = "room-error"
MAX_ROOM_ID_ATTEMPTS = 5


class RoomError(Exception):
    """Base class for room registry failures."""


class EmptySecretError(RoomError):
    pass


class RoomIdGenerationError(RoomError):
    pass


def generate_room_id(prefix: Optional[str] = None, nbytes: Optional[int] = None) -> str:
    """
    Build a fresh room id: namespace prefix + lowercase hex random suffix.

    Returns ROOM_ID_ERROR instead of raising if the OS random source fails.
    """
    prefix = settings.ROOM_ID_PREFIX if prefix is None else prefix
    nbytes = settings.ROOM_ID_BYTES if nbytes is None else nbytes
    try:
        suffix = secrets.token_hex(nbytes)
    except (NotImplementedError, OSError) as e:
        logger.error("Failed to generate room ID: %s", e)
        return ROOM_ID_ERROR
    return f"{prefix}{suffix}"


# ============================================================================
# ROOM
# ============================================================================

class Room:
    """
    One secret-gated broadcast domain.

    Attributes:
        id: Room identifier (registry key)
        created_at: Creation timestamp (UTC)

    The user_id -> connection map is private and only touched while holding
    ``self._lock``. Callers read it through ``snapshot()``, which copies the
    map so the lock is never held across a network write.
    """

    def __init__(self, room_id: str, secret: str) -> None:
        self.id = room_id
        self.created_at = datetime.now(timezone.utc)
        self._secret = secret
        self._clients: Dict[str, ClientConnection] = {}
        self._lock = asyncio.Lock()

    def check_secret(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        return secrets.compare_digest(candidate.encode("utf-8"), self._secret.encode("utf-8"))

    async def join(self, user_id: str, connection: ClientConnection) -> Optional[ClientConnection]:
        """
        Register ``connection`` under ``user_id``.

        Returns the connection it superseded, if any. The superseded handle is
        not closed here; its own session ends on its next transport failure.
        """
        async with self._lock:
            previous = self._clients.get(user_id)
            self._clients[user_id] = connection
            member_count = len(self._clients)

        if previous is not None and previous is not connection:
            logger.warning("User %s re-joined room %s; previous connection superseded", user_id, self.id)
            return previous

        logger.info("→ %s joined room %s (%d members)", user_id, self.id, member_count)
        return None

    async def leave(self, user_id: str, connection: Optional[ClientConnection] = None) -> bool:
        """
        Remove ``user_id`` from the room. Removing an absent user is a no-op.

        With ``connection`` given, the entry is only removed while it still
        points at that connection, so a superseded session cannot evict the
        session that replaced it.
        """
        async with self._lock:
            current = self._clients.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            del self._clients[user_id]
            member_count = len(self._clients)

        logger.info("← %s left room %s (%d members)", user_id, self.id, member_count)
        return True

    async def snapshot(self) -> Dict[str, ClientConnection]:
        async with self._lock:
            return dict(self._clients)

    async def member_count(self) -> int:
        async with self._lock:
            return len(self._clients)


# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    Process-wide map of room id -> Room.

    Rooms are only added, never removed: a room with zero members stays
    resident until the process exits. The map itself is never handed out;
    callers get Room objects or copies.

    Usage:
        registry = RoomRegistry()
        room_id = await registry.create_room("s3cret")
        room = await registry.get_room(room_id)
    """

    def __init__(self, id_prefix: Optional[str] = None, id_bytes: Optional[int] = None) -> None:
        self._rooms: Dict[str, Room] = {}
        self._lock = asyncio.Lock()
        self._id_prefix = id_prefix
        self._id_bytes = id_bytes

    async def create_room(self, secret: Optional[str]) -> str:
        """
        Create an empty room protected by ``secret``.

        Raises:
            EmptySecretError: secret is missing or empty
            RoomIdGenerationError: no usable id could be generated
        """
        if not secret:
            raise EmptySecretError("Password is required")

        async with self._lock:
            for _ in range(MAX_ROOM_ID_ATTEMPTS):
                room_id = generate_room_id(self._id_prefix, self._id_bytes)
                if room_id == ROOM_ID_ERROR:
                    raise RoomIdGenerationError("Failed to generate room ID")
                if room_id not in self._rooms:
                    break
                logger.warning("Room ID collision on %s, regenerating", room_id)
            else:
                raise RoomIdGenerationError("Failed to generate a unique room ID")

            self._rooms[room_id] = Room(room_id, secret)
            total = len(self._rooms)

        logger.info("✓ Created room %s (%d rooms)", room_id, total)
        return room_id

    async def get_room(self, room_id: str) -> Optional[Room]:
        async with self._lock:
            return self._rooms.get(room_id)

    async def list_rooms(self) -> List[Room]:
        async with self._lock:
            return list(self._rooms.values())

    async def room_count(self) -> int:
        async with self._lock:
            return len(self._rooms)
