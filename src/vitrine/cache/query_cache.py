"""Query cache — one entry per (endpoint, args), reference counted.

Learn: An entry's life:

    get_or_create()   uninitialized
    fetch starts      pending      (previous data kept)
    fetch ends        fulfilled | rejected
    last release()    eviction timer starts (keep_unused_for seconds)
    retain()          timer cancelled
    timer fires       entry removed

patch() is the "cache draft" primitive: the recipe edits a deep copy of
the cached data, which is then committed and announced to listeners.
No request is made. The returned PatchResult can undo the change.
"""

import asyncio
import copy
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional

import structlog

from vitrine.cache.tags import Tag, matches
from vitrine.http.base_query import FetchError, QueryResult

logger = structlog.get_logger()


class CacheStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


EntryListener = Callable[["CacheEntry"], None]


@dataclass
class CacheEntry:
    key: str
    endpoint: str
    arg: Any
    status: CacheStatus = CacheStatus.UNINITIALIZED
    data: Any = None
    error: Optional[FetchError] = None
    tags: list[Tag] = field(default_factory=list)
    subscribers: int = 0
    fulfilled_at: Optional[float] = None
    inflight: Optional[asyncio.Future] = None
    listeners: list[EntryListener] = field(default_factory=list)
    gc_handle: Optional[asyncio.TimerHandle] = None

    def as_result(self) -> QueryResult:
        return QueryResult(data=self.data, error=self.error)


@dataclass
class PatchResult:
    key: str
    applied: bool
    previous: Any = None
    cache: Optional["QueryCache"] = None

    def undo(self) -> None:
        if not self.applied or self.cache is None:
            return
        entry = self.cache.get(self.key)
        if entry is None:
            return
        entry.data = self.previous
        self.cache.notify(entry)


def cache_key(endpoint: str, arg: Any) -> str:
    """Stable key for an endpoint + argument (dict order doesn't matter)."""
    serialized = json.dumps(arg, sort_keys=True, default=str, separators=(",", ":"))
    return f"{endpoint}({serialized})"


class QueryCache:
    def __init__(self, keep_unused_for: float = 60.0):
        self.keep_unused_for = keep_unused_for
        self.entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self.entries.get(key)

    def get_or_create(self, endpoint: str, key_arg: Any, arg: Any = None) -> CacheEntry:
        key = cache_key(endpoint, key_arg)
        entry = self.entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, endpoint=endpoint, arg=arg if arg is not None else key_arg)
            self.entries[key] = entry
        return entry

    def entries_for(self, endpoint: str) -> list[CacheEntry]:
        return [e for e in self.entries.values() if e.endpoint == endpoint]

    def select_by_tags(self, tags: Iterable[Tag]) -> list[CacheEntry]:
        tags = list(tags)
        return [
            entry for entry in self.entries.values()
            if any(matches(inv, prov) for inv in tags for prov in entry.tags)
        ]

    # ─── Subscriptions + eviction ──────────────────────────

    def retain(self, entry: CacheEntry) -> None:
        entry.subscribers += 1
        if entry.gc_handle is not None:
            entry.gc_handle.cancel()
            entry.gc_handle = None

    def release(self, entry: CacheEntry) -> None:
        entry.subscribers = max(0, entry.subscribers - 1)
        if entry.subscribers == 0:
            self.schedule_gc(entry)

    def schedule_gc(self, entry: CacheEntry) -> None:
        if entry.subscribers > 0 or entry.gc_handle is not None:
            return
        if self.keep_unused_for <= 0:
            self.remove(entry.key)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.remove(entry.key)
            return
        entry.gc_handle = loop.call_later(self.keep_unused_for, self._collect, entry.key)

    def _collect(self, key: str) -> None:
        entry = self.entries.get(key)
        if entry is None:
            return
        entry.gc_handle = None
        if entry.subscribers == 0 and entry.inflight is None:
            logger.debug("cache.evicted", key=key)
            self.remove(key)

    def remove(self, key: str) -> None:
        entry = self.entries.pop(key, None)
        if entry is not None and entry.gc_handle is not None:
            entry.gc_handle.cancel()
            entry.gc_handle = None

    def clear(self) -> None:
        for key in list(self.entries):
            self.remove(key)

    # ─── Change propagation ────────────────────────────────

    def notify(self, entry: CacheEntry) -> None:
        for listener in list(entry.listeners):
            listener(entry)

    def patch(self, key: str, recipe: Callable[[Any], Any]) -> PatchResult:
        """Apply a recipe to a draft of the cached data and commit it."""
        entry = self.entries.get(key)
        if entry is None or entry.status not in (CacheStatus.FULFILLED, CacheStatus.PENDING):
            return PatchResult(key=key, applied=False)
        if entry.data is None:
            return PatchResult(key=key, applied=False)

        previous = entry.data
        draft = copy.deepcopy(previous)
        replacement = recipe(draft)
        entry.data = replacement if replacement is not None else draft
        entry.fulfilled_at = time.time()
        logger.debug("cache.patched", key=key)
        self.notify(entry)
        return PatchResult(key=key, applied=True, previous=previous, cache=self)
