"""Realtime infrastructure — Socket.IO rooms feeding the query cache.

Learn: Updates flow one way:
1. Server pushes an event into a resource's room
2. RoomSubscription validates it and checks it's for our resource
3. Reconciler patches or refetches the matching cache entries

The HTTP cache stays the source of truth; a dead socket only means data
is as fresh as the last fetch.
"""

from vitrine.realtime.events import (
    AnalyticsUpdate,
    EventValidationError,
    OrderPaymentUpdate,
    RealtimeEvent,
    ReturnUpdate,
    ReviewCreated,
    parse_event,
)
from vitrine.realtime.reconcile import STRATEGIES, Reconciler
from vitrine.realtime.room import ROOMS, RoomSpec, RoomState, RoomSubscription

__all__ = [
    "AnalyticsUpdate",
    "EventValidationError",
    "OrderPaymentUpdate",
    "ROOMS",
    "RealtimeEvent",
    "Reconciler",
    "ReturnUpdate",
    "ReviewCreated",
    "RoomSpec",
    "RoomState",
    "RoomSubscription",
    "STRATEGIES",
    "parse_event",
]
