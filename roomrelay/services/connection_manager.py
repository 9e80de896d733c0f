# roomrelay/services/connection_manager.py

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from roomrelay.models.models import MessageKind, parse_envelope
from roomrelay.services.broadcaster import BroadcastDispatcher
from roomrelay.services.metrics import RelayMetrics
from roomrelay.services.room_manager import Room

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]


# ============================================================================
# CONNECTION HANDLE
# ============================================================================

class ClientConnection:
    """
    The live duplex channel to one joined client.

    Writes come from the client's own session and from broadcasts started by
    other sessions, so ``send`` is serialised with a per-connection lock.
    ``close`` is idempotent.
    """

    def __init__(self, websocket: WebSocket, user_id: str) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self) -> Frame:
        """Wait for the next text or binary frame; raises WebSocketDisconnect on close."""
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", 1000), reason=message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send(self, payload: Frame) -> None:
        async with self._send_lock:
            await self.write(payload)

    @asynccontextmanager
    async def holding_writes(self) -> AsyncIterator[None]:
        """Keep every other writer out until the block exits. Use ``write`` inside it."""
        async with self._send_lock:
            yield

    async def write(self, payload: Frame) -> None:
        """Unlocked write; callers go through ``send`` or hold ``holding_writes``."""
        if isinstance(payload, bytes):
            await self.websocket.send_bytes(payload)
        else:
            await self.websocket.send_text(payload)

    async def close(self, code: int = 1000) -> None:
        if self._closed:
            return
        self._closed = True

        if (
            self.websocket.application_state == WebSocketState.DISCONNECTED
            or self.websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            logger.debug("Error closing WebSocket for %s: %s", self.user_id, e)


# ============================================================================
# CONNECTION SESSION
# ============================================================================

class ConnectionSession:
    """
    Lifetime of one joined client, from registration to cleanup.

    Lifecycle:
    ==========
    1. Register the connection in the room (``Room.join``)
    2. Acknowledge: {"type": "joined", "room_id": ..., "user_id": ...}
       Steps 1 and 2 run under the connection's write lock, so the ack is
       always the first frame the client receives
    3. Read frames until the client disconnects or the transport fails
    4. Leave the room and close the connection, exactly once, whatever
       ended the loop (disconnect, read error, cancellation)

    Inbound frames:
    ===============
    alert     -> broadcast the raw frame to every member, sender included
    location  -> logged and counted, never broadcast
    other     -> logged and counted as unknown, never broadcast
    malformed -> logged and discarded, the session keeps running
    """

    def __init__(
        self,
        room: Room,
        connection: ClientConnection,
        dispatcher: BroadcastDispatcher,
        metrics: Optional[RelayMetrics] = None,
    ) -> None:
        self.room = room
        self.connection = connection
        self.user_id = connection.user_id
        self.dispatcher = dispatcher
        self.metrics = metrics

    @asynccontextmanager
    async def registered(self) -> AsyncIterator[bool]:
        try:
            yield await self._join_and_acknowledge()
        finally:
            try:
                # a second cancellation must not leave the entry behind
                await asyncio.shield(self.room.leave(self.user_id, self.connection))
            finally:
                await self.connection.close()
                logger.info("✗ User %s disconnected from room %s", self.user_id, self.room.id)

    async def _join_and_acknowledge(self) -> bool:
        ack = json.dumps({"type": "joined", "room_id": self.room.id, "user_id": self.user_id})
        # broadcasts that see the new member queue behind the ack
        async with self.connection.holding_writes():
            await self.room.join(self.user_id, self.connection)
            try:
                await self.connection.write(ack)
            except Exception as e:
                logger.warning("Could not acknowledge join for %s in room %s: %s", self.user_id, self.room.id, e)
                return False
        return True

    async def run(self) -> None:
        async with self.registered() as acknowledged:
            if acknowledged:
                await self._receive_loop()

    async def _receive_loop(self) -> None:
        while True:
            try:
                frame = await self.connection.receive()
            except WebSocketDisconnect as e:
                logger.info("WebSocket closed by %s in room %s (code=%s)", self.user_id, self.room.id, e.code)
                return
            except Exception as e:
                logger.warning("Read error from user %s in room %s: %s", self.user_id, self.room.id, e)
                return

            await self.handle_frame(frame)

    async def handle_frame(self, frame: Frame) -> None:
        if self.metrics is not None:
            self.metrics.frames_received += 1

        envelope = parse_envelope(frame)
        if envelope is None:
            logger.warning("Invalid message from %s in room %s: %r", self.user_id, self.room.id, frame)
            if self.metrics is not None:
                self.metrics.invalid_frames += 1
            return

        logger.info(
            "Message received in room %s from %s → type=%s content=%s",
            self.room.id, self.user_id, envelope.type, envelope.content,
        )

        kind = envelope.kind
        if kind is MessageKind.ALERT:
            if self.metrics is not None:
                self.metrics.alerts += 1
            await self.dispatcher.broadcast(self.room, frame)
        elif kind is MessageKind.LOCATION:
            if self.metrics is not None:
                self.metrics.location_updates += 1
            logger.info("Location update from %s: %s", self.user_id, envelope.content)
        else:
            if self.metrics is not None:
                self.metrics.unknown_messages += 1
            logger.warning("Unknown message type from %s: %r", self.user_id, envelope.type)
