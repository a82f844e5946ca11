"""Store — the single shared mutable resource.

Learn: All client-side state (session + response modal) changes through
dispatch(). Reducers run synchronously and in dispatch order, so two
coroutines can never interleave inside a state change. The event loop
only switches at an await, and dispatch() never awaits.

Subscribers are called after every action with the action itself; the CLI
uses this to print modals, tests use it to count notifications.
"""

from typing import Callable

import structlog

from vitrine.state.session import SessionContext
from vitrine.state.ui import UIState

logger = structlog.get_logger()

Listener = Callable[[object], None]


class Store:
    def __init__(self, session: SessionContext | None = None):
        self.session = session or SessionContext()
        self.ui = UIState()
        self._listeners: list[Listener] = []

    @property
    def token(self) -> str | None:
        return self.session.token

    def dispatch(self, action) -> None:
        self.session.reduce(action)
        self.ui.reduce(action)
        logger.debug("store.dispatch", action=type(action).__name__)
        for listener in list(self._listeners):
            listener(action)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
