# roomrelay/core/state.py
from __future__ import annotations

from roomrelay.services.broadcaster import BroadcastDispatcher
from roomrelay.services.metrics import RelayMetrics
from roomrelay.services.room_manager import RoomRegistry

# Global singletons for app state
room_registry: RoomRegistry = RoomRegistry()
metrics: RelayMetrics = RelayMetrics()
dispatcher: BroadcastDispatcher = BroadcastDispatcher(metrics=metrics)


def init_state() -> None:
    """(Re)build the process-wide registry, metrics and dispatcher, all empty."""
    global room_registry, metrics, dispatcher

    room_registry = RoomRegistry()
    metrics = RelayMetrics()
    dispatcher = BroadcastDispatcher(metrics=metrics)
