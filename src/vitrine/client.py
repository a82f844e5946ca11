"""StorefrontClient — one object wiring config, session, HTTP and slices.

Learn: Everything that talks to the backend shares three things:

    store   the session token (read by every request) + response modal
    http    one httpx.AsyncClient (connection pool, timeout)
    config  where the REST API and socket server live

The client builds those once and hands them to each slice. It is an
async context manager so the connection pool is always closed:

    async with StorefrontClient() as shop:
        result = await shop.orders.get_orders({"status": "pending"})
        async with shop.live("order", "ORD-1"):
            ...

Tests inject an httpx transport (ASGITransport over a fake backend) and a
socket client factory instead of touching the network.
"""

from typing import Callable, Optional

import httpx
import socketio
import structlog

from vitrine.api import (
    AnalyticsApi,
    AuthApi,
    CategoriesApi,
    OrdersApi,
    ProductsApi,
    ProductTypesApi,
    ReturnsApi,
    ReviewsApi,
    SettingsApi,
    UsersApi,
)
from vitrine.config import Settings, settings as default_settings
from vitrine.realtime.events import RealtimeEvent
from vitrine.realtime.reconcile import Reconciler
from vitrine.realtime.room import ClientFactory, RoomSubscription
from vitrine.state.session import SessionContext, SessionStorage
from vitrine.state.store import Store

logger = structlog.get_logger()


class StorefrontClient:
    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        session: Optional[SessionContext] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        socket_factory: Optional[ClientFactory] = None,
    ):
        self.settings = config or default_settings

        if session is None:
            session = SessionContext(
                SessionStorage(self.settings.session_path),
                ttl_days=self.settings.token_ttl_days,
            )
            session.load()
        self.store = Store(session)

        self.http = httpx.AsyncClient(timeout=self.settings.request_timeout, transport=transport)
        self.socket_factory = socket_factory or socketio.AsyncClient

        slice_kwargs = {
            "api_url": self.settings.api_url,
            "keep_unused_for": self.settings.keep_unused_for,
        }
        self.auth = AuthApi(self.http, self.store, **slice_kwargs)
        self.orders = OrdersApi(self.http, self.store, **slice_kwargs)
        self.products = ProductsApi(self.http, self.store, **slice_kwargs)
        self.categories = CategoriesApi(self.http, self.store, **slice_kwargs)
        self.product_types = ProductTypesApi(self.http, self.store, **slice_kwargs)
        self.reviews = ReviewsApi(self.http, self.store, **slice_kwargs)
        self.analytics = AnalyticsApi(self.http, self.store, **slice_kwargs)
        self.users = UsersApi(self.http, self.store, **slice_kwargs)
        self.store_settings = SettingsApi(self.http, self.store, **slice_kwargs)
        self.returns = ReturnsApi(self.http, self.store, **slice_kwargs)

    @property
    def session(self) -> SessionContext:
        return self.store.session

    @property
    def slices(self) -> list:
        return [
            self.auth, self.orders, self.products, self.categories,
            self.product_types, self.reviews, self.analytics, self.users,
            self.store_settings, self.returns,
        ]

    def live(
        self,
        room: str,
        resource_id: Optional[str],
        *,
        on_update: Optional[Callable[[RealtimeEvent], None]] = None,
    ) -> RoomSubscription:
        """A room subscription whose events reconcile into this client's cache.

        Not opened yet: use `async with` or call open()/close().
        """
        reconciler = Reconciler(
            orders=self.orders,
            returns=self.returns,
            analytics=self.analytics,
            reviews=self.reviews,
            on_update=on_update,
        )
        return RoomSubscription(
            room,
            resource_id,
            self.settings.socket_url(),
            reconciler,
            client_factory=self.socket_factory,
        )

    async def aclose(self) -> None:
        for api in self.slices:
            api.cache.clear()
        await self.http.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
