# roomrelay/services/broadcaster.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from roomrelay.services.metrics import RelayMetrics
from roomrelay.services.room_manager import Room

logger = logging.getLogger(__name__)


@dataclass
class BroadcastReport:
    room_id: str
    delivered: List[str] = field(default_factory=list)
    evicted: List[str] = field(default_factory=list)
    # write failed but the entry was already gone or replaced
    failed: List[str] = field(default_factory=list)


# ============================================================================
# BROADCAST DISPATCHER
# ============================================================================

class BroadcastDispatcher:
    """
    Fans one payload out to the members of a room.

    Used by live sessions (inbound "alert" frames) and by the producer
    endpoint. Both paths deliver to every member, the sender included.

    Delivery is best effort and serial:
        1. Snapshot the room's members (room lock released before writing)
        2. Write to each member in turn
        3. A member whose write fails is closed and removed from the room;
           the rest of the snapshot is still served

    Only a failure that actually removed the member counts as an eviction.
    When two broadcasts hit the same dead member, or the user re-joined on a
    new connection meanwhile, the extra failures land in ``failed``.

    Recipient failures never reach the caller. The returned BroadcastReport
    is informational only.
    """

    def __init__(self, metrics: Optional[RelayMetrics] = None) -> None:
        self.metrics = metrics

    async def broadcast(
        self,
        room: Room,
        payload: Union[str, bytes],
        exclude_user_id: Optional[str] = None,
    ) -> BroadcastReport:
        report = BroadcastReport(room_id=room.id)
        members = await room.snapshot()

        if not members:
            logger.info("[routing] Skipped broadcast: room=%s has 0 members", room.id)
            return report

        logger.info("📨 Broadcasting to room %s: %d clients", room.id, len(members))

        for user_id, connection in members.items():
            if user_id == exclude_user_id:
                continue
            try:
                await connection.send(payload)
            except Exception as e:
                removed = await room.leave(user_id, connection)
                await connection.close()
                if removed:
                    logger.error("Error sending to %s in room %s: %s. Removing client.", user_id, room.id, e)
                    report.evicted.append(user_id)
                else:
                    logger.warning("Error sending to %s in room %s: %s (already removed)", user_id, room.id, e)
                    report.failed.append(user_id)
            else:
                report.delivered.append(user_id)

        if self.metrics is not None:
            self.metrics.record_broadcast(len(report.delivered), len(report.evicted))

        return report
