"""API slice base — declarative endpoints over the query cache.

Learn: A slice is a class whose methods, decorated with @query or
@mutation, turn an argument into FetchArgs. The decorators also carry the
cache rules:

    class OrdersApi(ApiSlice):
        base_path = "/admin"
        tag_types = ("Orders", "Order")

        @query(provides_tags=lambda result, error, id: [Tag("Order", id)])
        def get_order(self, id: str) -> FetchArgs:
            return FetchArgs(f"orders/{id}")

On an instance the decorated name becomes a BoundEndpoint, so callers
write `await api.get_order("ORD-1")`, `await api.get_order.subscribe(...)`
or `api.get_order.update_query_data("ORD-1", recipe)`.

Queries go through the cache (cached result, shared in-flight request,
refetch on invalidation). Mutations always hit the network and then
invalidate their tags: subscribed entries refetch, idle ones are evicted.
A mutation that got no response at all invalidates nothing.
"""

import asyncio
import inspect
import time
from typing import Any, Callable, Literal, Optional, Type

import httpx
import structlog
from pydantic import BaseModel

from vitrine.cache.query_cache import (
    CacheEntry,
    CacheStatus,
    PatchResult,
    QueryCache,
    cache_key,
)
from vitrine.cache.tags import Tag, TagDescription, TagsSpec, resolve_tags
from vitrine.http.base_query import (
    BaseQuery,
    BaseQueryFn,
    FetchArgs,
    QueryApi,
    QueryResult,
    join_url,
)
from vitrine.http.notifications import with_notifications
from vitrine.state.store import Store

logger = structlog.get_logger()

ResultHook = Callable[["ApiSlice", Any, QueryResult], None]


class UnknownEndpointError(Exception):
    """Raised when a slice has no endpoint of the requested name/kind."""


# ─── Endpoint declarations ───────────────────────────────


class Endpoint:
    def __init__(
        self,
        build: Callable[..., FetchArgs],
        kind: Literal["query", "mutation"],
        *,
        provides_tags: TagsSpec = None,
        invalidates_tags: TagsSpec = None,
        arg_model: Optional[Type[BaseModel]] = None,
        on_result: Optional[ResultHook] = None,
    ):
        self.build_fn = build
        self.kind = kind
        self.provides_tags = provides_tags
        self.invalidates_tags = invalidates_tags
        self.arg_model = arg_model
        self.on_result = on_result
        self.name = build.__name__
        self.takes_arg = len(inspect.signature(build).parameters) > 1
        self.__doc__ = build.__doc__

    def __set_name__(self, owner, name: str) -> None:
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return BoundEndpoint(instance, self)

    def prepare(self, arg: Any) -> Any:
        """Validate the argument against arg_model, if one is declared."""
        if self.arg_model is None or isinstance(arg, self.arg_model):
            return arg
        return self.arg_model.model_validate(arg or {})

    def build(self, api: "ApiSlice", arg: Any) -> FetchArgs:
        if self.takes_arg:
            return self.build_fn(api, arg)
        return self.build_fn(api)


def key_arg(arg: Any) -> Any:
    """The JSON-able form of an argument, used for cache keys."""
    if isinstance(arg, BaseModel):
        return arg.model_dump(mode="json", exclude_none=True, by_alias=True)
    return arg


def query(
    *,
    provides_tags: TagsSpec = None,
    arg_model: Optional[Type[BaseModel]] = None,
    on_result: Optional[ResultHook] = None,
):
    def decorator(fn):
        return Endpoint(
            fn, "query",
            provides_tags=provides_tags,
            arg_model=arg_model,
            on_result=on_result,
        )
    return decorator


def mutation(
    *,
    invalidates_tags: TagsSpec = None,
    arg_model: Optional[Type[BaseModel]] = None,
    on_result: Optional[ResultHook] = None,
):
    def decorator(fn):
        return Endpoint(
            fn, "mutation",
            invalidates_tags=invalidates_tags,
            arg_model=arg_model,
            on_result=on_result,
        )
    return decorator


class BoundEndpoint:
    """An endpoint attached to a slice instance."""

    def __init__(self, api: "ApiSlice", endpoint: Endpoint):
        self.api = api
        self.endpoint = endpoint

    @property
    def name(self) -> str:
        return self.endpoint.name

    async def __call__(self, arg: Any = None, *, force: bool = False) -> QueryResult:
        if self.endpoint.kind == "mutation":
            return await self.api.run_mutation(self.name, arg)
        return await self.api.run_query(self.name, arg, force=force)

    async def subscribe(self, arg: Any = None) -> "QuerySubscription":
        return await self.api.subscribe(self.name, arg)

    def select(self, arg: Any = None) -> Optional[CacheEntry]:
        return self.api.select(self.name, arg)

    def update_query_data(self, arg: Any, recipe: Callable[[Any], Any]) -> PatchResult:
        return self.api.update_query_data(self.name, arg, recipe)


# ─── Subscriptions ───────────────────────────────────────


class QuerySubscription:
    """A reference-counted interest in one cache entry.

    While at least one subscription is open the entry is never evicted and
    is refetched whenever one of its tags is invalidated.
    """

    def __init__(self, api: "ApiSlice", endpoint: str, arg: Any, entry: CacheEntry):
        self.api = api
        self.endpoint = endpoint
        self.arg = arg
        self.entry = entry
        self._listeners: list[Callable[[CacheEntry], None]] = []
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def data(self) -> Any:
        return self.entry.data

    @property
    def error(self):
        return self.entry.error

    @property
    def status(self) -> CacheStatus:
        return self.entry.status

    async def refetch(self) -> QueryResult:
        return await self.api.run_query(self.endpoint, self.arg, force=True)

    def on_change(self, listener: Callable[[CacheEntry], None]) -> Callable[[], None]:
        self.entry.listeners.append(listener)
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self.entry.listeners:
                self.entry.listeners.remove(listener)
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        for listener in self._listeners:
            if listener in self.entry.listeners:
                self.entry.listeners.remove(listener)
        self._listeners.clear()
        self.api.cache.release(self.entry)

    async def __aenter__(self) -> "QuerySubscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.unsubscribe()


# ─── Slice ───────────────────────────────────────────────


class ApiSlice:
    """Base class for one REST resource's endpoints and cache."""

    reducer_path: str = ""
    base_path: str = ""
    tag_types: tuple[str, ...] = ()
    error_title: str = "Request Error"
    success_title: str = "Success"

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: Store,
        *,
        api_url: str,
        keep_unused_for: float = 60.0,
        base_query: Optional[BaseQueryFn] = None,
    ):
        self.store = store
        self.cache = QueryCache(keep_unused_for)
        self.base_url = join_url(api_url, self.base_path)
        raw = BaseQuery(http, self.base_url)
        self.base_query = base_query or self.build_base_query(raw)
        self.log = logger.bind(slice=self.reducer_path or type(self).__name__)

    def build_base_query(self, raw: BaseQuery) -> BaseQueryFn:
        """Middleware stack for this slice. Override to add layers."""
        return with_notifications(
            raw,
            error_title=self.error_title,
            success_title=self.success_title,
        )

    @classmethod
    def endpoints(cls) -> dict[str, Endpoint]:
        found: dict[str, Endpoint] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Endpoint):
                    found[name] = value
        return found

    def _endpoint(self, name: str, kind: str) -> Endpoint:
        endpoint = self.endpoints().get(name)
        if endpoint is None or endpoint.kind != kind:
            raise UnknownEndpointError(f"{type(self).__name__} has no {kind} '{name}'")
        return endpoint

    def _entry(self, endpoint: Endpoint, arg: Any) -> CacheEntry:
        return self.cache.get_or_create(endpoint.name, key_arg(arg), arg)

    # ─── Queries ───────────────────────────────────────────

    async def run_query(self, name: str, arg: Any = None, *, force: bool = False) -> QueryResult:
        endpoint = self._endpoint(name, "query")
        arg = endpoint.prepare(arg)
        entry = self._entry(endpoint, arg)

        if entry.inflight is not None:
            running = entry.inflight
            result = await asyncio.shield(running)
            if force:
                # The running request may have been sent before whatever
                # forced this call; only a request started after it counts
                if entry.inflight is not None and entry.inflight is not running:
                    result = await asyncio.shield(entry.inflight)
                else:
                    result = await self._start_fetch(entry, endpoint, arg)
        elif not force and entry.status == CacheStatus.FULFILLED:
            result = entry.as_result()
        else:
            result = await self._start_fetch(entry, endpoint, arg)

        if entry.subscribers == 0:
            self.cache.schedule_gc(entry)
        return result

    async def _start_fetch(self, entry: CacheEntry, endpoint: Endpoint, arg: Any) -> QueryResult:
        entry.status = CacheStatus.PENDING
        if not entry.tags:
            # Provisional tags from the argument alone, so a first fetch that
            # is still in flight can already be invalidated
            entry.tags = resolve_tags(endpoint.provides_tags, None, None, arg, self.tag_types)
        task = asyncio.ensure_future(self._fetch(entry, endpoint, arg))
        entry.inflight = task
        return await asyncio.shield(task)

    async def _fetch(self, entry: CacheEntry, endpoint: Endpoint, arg: Any) -> QueryResult:
        try:
            result = await self.base_query(
                endpoint.build(self, arg),
                QueryApi(self.store, endpoint.name, "query"),
            )
        finally:
            entry.inflight = None

        if result.ok:
            entry.status = CacheStatus.FULFILLED
            entry.data = result.data
            entry.error = None
            entry.fulfilled_at = time.time()
        else:
            entry.status = CacheStatus.REJECTED
            entry.error = result.error
        entry.tags = resolve_tags(
            endpoint.provides_tags, result.data, result.error, arg, self.tag_types
        )

        if endpoint.on_result is not None:
            endpoint.on_result(self, arg, result)
        self.cache.notify(entry)
        return result

    async def subscribe(self, name: str, arg: Any = None) -> QuerySubscription:
        endpoint = self._endpoint(name, "query")
        arg = endpoint.prepare(arg)
        entry = self._entry(endpoint, arg)
        self.cache.retain(entry)
        subscription = QuerySubscription(self, name, arg, entry)
        await self.run_query(name, arg)
        return subscription

    def select(self, name: str, arg: Any = None) -> Optional[CacheEntry]:
        endpoint = self._endpoint(name, "query")
        arg = endpoint.prepare(arg)
        return self.cache.get(self._entry_key(endpoint, arg))

    def _entry_key(self, endpoint: Endpoint, arg: Any) -> str:
        return cache_key(endpoint.name, key_arg(arg))

    def update_query_data(self, name: str, arg: Any, recipe: Callable[[Any], Any]) -> PatchResult:
        """Patch a cached query result in place, without a request."""
        endpoint = self._endpoint(name, "query")
        arg = endpoint.prepare(arg)
        return self.cache.patch(self._entry_key(endpoint, arg), recipe)

    # ─── Mutations + invalidation ──────────────────────────

    async def run_mutation(self, name: str, arg: Any = None) -> QueryResult:
        endpoint = self._endpoint(name, "mutation")
        arg = endpoint.prepare(arg)
        result = await self.base_query(
            endpoint.build(self, arg),
            QueryApi(self.store, endpoint.name, "mutation"),
        )

        if endpoint.on_result is not None:
            endpoint.on_result(self, arg, result)

        # No response means the server state is unknown, not changed
        if result.error is not None and result.error.status == "FETCH_ERROR":
            return result

        tags = resolve_tags(
            endpoint.invalidates_tags, result.data, result.error, arg, self.tag_types
        )
        if tags:
            await self.invalidate_tags(tags)
        return result

    async def invalidate_tags(self, tags: list[TagDescription]) -> int:
        """Refetch subscribed entries matching tags, evict the rest.

        Returns the number of refetches issued.
        """
        resolved = resolve_tags(list(tags), None, None, None, self.tag_types)
        refetches = []
        for entry in self.cache.select_by_tags(resolved):
            if entry.subscribers > 0:
                refetches.append(self.run_query(entry.endpoint, entry.arg, force=True))
            else:
                self.cache.remove(entry.key)

        self.log.debug(
            "cache.invalidated",
            tags=[str(t) for t in resolved],
            refetches=len(refetches),
        )
        if refetches:
            await asyncio.gather(*refetches)
        return len(refetches)


__all__ = [
    "ApiSlice",
    "BoundEndpoint",
    "Endpoint",
    "QuerySubscription",
    "Tag",
    "UnknownEndpointError",
    "mutation",
    "query",
]
