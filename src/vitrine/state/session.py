"""Session context — the authenticated user, their token and its expiry.

Learn: This is the explicit replacement for a browser's localStorage-backed
auth slice. The lifecycle is spelled out instead of hidden in a singleton:

    load()   restore persisted keys (expired tokens are wiped)
    save()   persist the current token/user/expiry
    clear()  forget everything, in memory and on disk

Persistence uses the same three keys the storefront uses (auth-token,
auth-user, token-expiry) in a small JSON file. With no path the session
lives in memory only (tests, short-lived scripts).
"""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

import jwt
import structlog

from vitrine.state.actions import (
    LoginSuccess,
    Logout,
    RefreshToken,
    RestoreAuth,
    TouchActivity,
    UpdateUser,
)

logger = structlog.get_logger()

TOKEN_KEY = "auth-token"
USER_KEY = "auth-user"
EXPIRY_KEY = "token-expiry"

DEFAULT_TOKEN_TTL_DAYS = 30


class SessionStorageError(Exception):
    """Raised when the session file cannot be read or written."""


class SessionStorage:
    """Key/value persistence for session keys, backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._memory: dict[str, Any] = {}

    def _read(self) -> dict[str, Any]:
        if self.path is None:
            return dict(self._memory)
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise SessionStorageError(f"Cannot read session file {self.path}: {e}")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("session.storage_corrupt", path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        if self.path is None:
            self._memory = dict(data)
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so a crash never leaves half a file
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError as e:
            raise SessionStorageError(f"Cannot write session file {self.path}: {e}")

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, *keys: str) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)


def token_expiry(
    token: str,
    expires_in: Optional[float],
    *,
    now: float,
    ttl_days: int = DEFAULT_TOKEN_TTL_DAYS,
) -> float:
    """Compute the absolute expiry (epoch seconds) for a token.

    Explicit expires_in wins, then the JWT exp claim, then ttl_days.
    The claim is read without signature verification; the backend is the
    only party that checks signatures.
    """
    if expires_in:
        return now + expires_in
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        claims = {}
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return float(exp)
    return now + ttl_days * 24 * 60 * 60


class SessionContext:
    """Process-wide auth state with an explicit load/save/clear lifecycle."""

    def __init__(
        self,
        storage: Optional[SessionStorage] = None,
        *,
        ttl_days: int = DEFAULT_TOKEN_TTL_DAYS,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage or SessionStorage()
        self.ttl_days = ttl_days
        self._clock = clock

        self.token: Optional[str] = None
        self.user: Optional[dict[str, Any]] = None
        self.token_expiry: Optional[float] = None
        self.last_activity: float = clock()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def is_expired(self) -> bool:
        return self.token_expiry is not None and self._clock() >= self.token_expiry

    # ─── Lifecycle ─────────────────────────────────────────

    def load(self) -> bool:
        """Restore a persisted session. Returns True if one was restored."""
        token = self.storage.get(TOKEN_KEY)
        user = self.storage.get(USER_KEY)
        expiry = self.storage.get(EXPIRY_KEY)

        if not (token and user and expiry is not None):
            return False

        try:
            expiry = float(expiry)
        except (TypeError, ValueError):
            expiry = 0.0

        if self._clock() >= expiry:
            logger.info("session.expired", expired_at=expiry)
            self.clear()
            return False

        self.token = token
        self.user = user
        self.token_expiry = expiry
        return True

    def save(self) -> None:
        if not self.token:
            return
        self.storage.set(TOKEN_KEY, self.token)
        self.storage.set(USER_KEY, self.user or {})
        self.storage.set(EXPIRY_KEY, self.token_expiry)

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.token_expiry = None
        self.storage.remove(TOKEN_KEY, USER_KEY, EXPIRY_KEY)

    # ─── Reducer ───────────────────────────────────────────

    def reduce(self, action) -> None:
        now = self._clock()

        if isinstance(action, LoginSuccess):
            self.user = dict(action.user)
            self.token = action.token
            self.token_expiry = token_expiry(
                action.token, action.expires_in, now=now, ttl_days=self.ttl_days
            )
            self.last_activity = now
            self.save()

        elif isinstance(action, Logout):
            self.clear()

        elif isinstance(action, RefreshToken):
            self.token = action.token
            self.token_expiry = token_expiry(
                action.token, action.expires_in, now=now, ttl_days=self.ttl_days
            )
            self.last_activity = now
            self.storage.set(TOKEN_KEY, self.token)
            self.storage.set(EXPIRY_KEY, self.token_expiry)

        elif isinstance(action, RestoreAuth):
            self.load()

        elif isinstance(action, UpdateUser):
            if self.user is not None:
                self.user = {**self.user, **action.changes}
                self.storage.set(USER_KEY, self.user)

        elif isinstance(action, TouchActivity):
            self.last_activity = now
