# roomrelay/services/metrics.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class RelayMetrics:
    """In-memory counters behind the /metrics endpoint (reset on restart)."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    frames_received: int = 0
    alerts: int = 0
    location_updates: int = 0
    unknown_messages: int = 0
    invalid_frames: int = 0
    notifications: int = 0

    broadcasts: int = 0
    deliveries: int = 0
    evictions: int = 0

    def record_broadcast(self, delivered: int, evicted: int) -> None:
        self.broadcasts += 1
        self.deliveries += delivered
        self.evictions += evicted

    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()
