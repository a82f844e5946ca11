"""Room subscriptions — one Socket.IO connection scoped to one resource.

Learn: A room subscription walks a small state machine:

    DISCONNECTED ──open()──▶ CONNECTING ──connect event──▶ SUBSCRIBED
         ▲                                                     │
         └── connect failed                         close() ───┴──▶ CLOSED

On the transport's connect event it emits the room's join event with the
resource id (so a reconnect re-joins automatically). Each pushed update is
validated, filtered to the joined resource, and handed to on_event.

If the socket server is unreachable we log and stay DISCONNECTED. The
HTTP cache is still the source of truth; realtime only keeps it fresh.

close() is the only cancellation path. It always tries the leave event,
even if the join never happened, then detaches every handler and
disconnects. Calling it twice is harmless and it never raises.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import socketio
import structlog
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from vitrine.realtime import events
from vitrine.realtime.events import EventValidationError, RealtimeEvent, parse_event

logger = structlog.get_logger()

EventHandler = Callable[[RealtimeEvent], Union[Awaitable[None], None]]
ClientFactory = Callable[[], Any]


@dataclass(frozen=True)
class RoomSpec:
    name: str
    join_event: str
    leave_event: str
    events: tuple[str, ...]


ROOMS: dict[str, RoomSpec] = {
    "order": RoomSpec(
        "order",
        events.JOIN_ORDER,
        events.LEAVE_ORDER,
        (events.ORDER_PAYMENT_UPDATE, events.ORDER_PAYMENT_UPDATE_NS),
    ),
    "analytics": RoomSpec(
        "analytics",
        events.JOIN_ANALYTICS,
        events.LEAVE_ANALYTICS,
        (events.ANALYTICS_UPDATE,),
    ),
    "product": RoomSpec(
        "product",
        events.JOIN_PRODUCT,
        events.LEAVE_PRODUCT,
        (events.REVIEW_NEW,),
    ),
    "return": RoomSpec(
        "return",
        events.JOIN_RETURN,
        events.LEAVE_RETURN,
        (events.RETURN_UPDATE,),
    ),
}


class RoomState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"


class RoomSubscription:
    def __init__(
        self,
        spec: Union[RoomSpec, str],
        resource_id: Optional[str],
        url: str,
        on_event: EventHandler,
        *,
        client_factory: ClientFactory = socketio.AsyncClient,
    ):
        self.spec = ROOMS[spec] if isinstance(spec, str) else spec
        self.resource_id = resource_id
        self.url = url
        self.on_event = on_event
        self._client_factory = client_factory
        self.sio: Any = None
        self.state = RoomState.DISCONNECTED
        self._handlers: dict[str, Callable] = {}

    @property
    def log(self):
        return logger.bind(room=self.spec.name, resource_id=self.resource_id)

    # ─── Lifecycle ─────────────────────────────────────────

    async def open(self) -> None:
        if not self.resource_id:
            self.log.debug("room.skipped", reason="no resource id")
            return
        if self.state in (RoomState.CONNECTING, RoomState.SUBSCRIBED):
            return

        if self.sio is not None:
            # Left over from a failed connect
            stale, self.sio = self.sio, None
            await self._dispose(stale)

        self.sio = self._client_factory()
        self._handlers = {
            "connect": self._on_connect,
            "disconnect": self._on_disconnect,
        }
        for name in self.spec.events:
            self._handlers[name] = self._event_handler(name)
        for name, handler in self._handlers.items():
            self.sio.on(name, handler)

        self.state = RoomState.CONNECTING
        try:
            await self.sio.connect(self.url, transports=["websocket"])
        except SocketConnectionError as e:
            self.log.warning("room.connect_failed", url=self.url, error=str(e))
            self.state = RoomState.DISCONNECTED

    async def close(self) -> None:
        if self.state == RoomState.CLOSED:
            return
        self.state = RoomState.CLOSED
        sio, self.sio = self.sio, None
        if sio is None:
            return

        try:
            await sio.emit(self.spec.leave_event, self.resource_id)
        except SocketIOError as e:
            self.log.debug("room.leave_failed", error=str(e))

        await self._dispose(sio)
        self.log.info("room.left")

    async def retarget(self, resource_id: Optional[str]) -> None:
        """Leave the current resource's room and join another's."""
        if resource_id == self.resource_id and self.state != RoomState.CLOSED:
            return
        await self.close()
        self.resource_id = resource_id
        self.state = RoomState.DISCONNECTED
        await self.open()

    async def wait(self) -> None:
        """Block until the transport disconnects for good."""
        if self.sio is not None:
            await self.sio.wait()

    async def __aenter__(self) -> "RoomSubscription":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ─── Transport callbacks ───────────────────────────────

    async def _on_connect(self) -> None:
        if self.sio is None or self.state == RoomState.CLOSED:
            return
        await self.sio.emit(self.spec.join_event, self.resource_id)
        self.state = RoomState.SUBSCRIBED
        self.log.info("room.joined", join_event=self.spec.join_event)

    async def _on_disconnect(self, *args) -> None:
        if self.state == RoomState.SUBSCRIBED:
            # The transport reconnects on its own and connect re-joins
            self.state = RoomState.CONNECTING
            self.log.info("room.disconnected")

    def _event_handler(self, name: str):
        async def handle(payload: Any = None) -> None:
            await self.dispatch(name, payload)

        return handle

    async def dispatch(self, name: str, payload: Any) -> bool:
        """Validate one pushed payload and hand it on. False if dropped."""
        if self.state == RoomState.CLOSED:
            return False
        try:
            event = parse_event(name, payload)
        except EventValidationError as e:
            self.log.warning("room.event_invalid", event_name=name, error=str(e))
            return False

        if event.resource_id is not None and str(event.resource_id) != str(self.resource_id):
            self.log.debug("room.event_ignored", event_name=name, for_resource=event.resource_id)
            return False

        self.log.debug("room.event", event_name=name)
        result = self.on_event(event)
        if inspect.isawaitable(result):
            await result
        return True

    async def _dispose(self, sio: Any) -> None:
        self._detach(sio)
        try:
            await sio.disconnect()
        except SocketIOError as e:
            self.log.debug("room.disconnect_failed", error=str(e))

    def _detach(self, sio: Any) -> None:
        handlers = getattr(sio, "handlers", {}).get("/", {})
        for name, handler in self._handlers.items():
            if handlers.get(name) is handler:
                del handlers[name]
        self._handlers = {}
