"""Session context + store tests."""

import json

import jwt
import pytest

from vitrine.state.actions import (
    LoginSuccess,
    Logout,
    RefreshToken,
    RestoreAuth,
    ShowModal,
    TouchActivity,
    UpdateUser,
)
from vitrine.state.session import (
    EXPIRY_KEY,
    TOKEN_KEY,
    USER_KEY,
    SessionContext,
    SessionStorage,
    SessionStorageError,
    token_expiry,
)
from vitrine.state.store import Store

NOW = 1_700_000_000.0
DAY = 24 * 60 * 60


class Clock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ─── Token expiry ────────────────────────────────────────


def test_expires_in_wins():
    token = jwt.encode({"exp": int(NOW + 10)}, "k", algorithm="HS256")
    assert token_expiry(token, 3600, now=NOW) == NOW + 3600


def test_jwt_exp_claim_read_without_verification():
    token = jwt.encode({"exp": int(NOW + 7200), "sub": "U-1"}, "server-secret", algorithm="HS256")
    assert token_expiry(token, None, now=NOW) == NOW + 7200


def test_opaque_token_defaults_to_ttl_days():
    assert token_expiry("not-a-jwt", None, now=NOW) == NOW + 30 * DAY
    assert token_expiry("not-a-jwt", None, now=NOW, ttl_days=1) == NOW + DAY


# ─── Storage ─────────────────────────────────────────────


def test_file_storage_round_trip(tmp_path):
    path = tmp_path / "nested" / "session.json"
    storage = SessionStorage(path)

    storage.set(TOKEN_KEY, "abc")
    storage.set(USER_KEY, {"name": "Ada"})
    storage.remove(TOKEN_KEY)

    assert json.loads(path.read_text()) == {USER_KEY: {"name": "Ada"}}
    assert SessionStorage(path).get(USER_KEY) == {"name": "Ada"}


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json")
    assert SessionStorage(path).get(TOKEN_KEY) is None


def test_unwritable_path_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    storage = SessionStorage(blocker / "session.json")

    with pytest.raises(SessionStorageError):
        storage.set(TOKEN_KEY, "abc")


# ─── Lifecycle ───────────────────────────────────────────


def test_login_persists_and_load_restores(tmp_path):
    path = tmp_path / "session.json"
    clock = Clock()
    session = SessionContext(SessionStorage(path), clock=clock)

    session.reduce(LoginSuccess(user={"_id": "U-1", "name": "Ada"}, token="abc", expires_in=3600))

    restored = SessionContext(SessionStorage(path), clock=clock)
    assert restored.load() is True
    assert restored.token == "abc"
    assert restored.user == {"_id": "U-1", "name": "Ada"}
    assert restored.token_expiry == NOW + 3600
    assert restored.is_authenticated


def test_expired_session_is_cleared_on_load(tmp_path):
    path = tmp_path / "session.json"
    clock = Clock()
    SessionContext(SessionStorage(path), clock=clock).reduce(
        LoginSuccess(user={"_id": "U-1"}, token="abc", expires_in=60)
    )

    clock.now += 61
    restored = SessionContext(SessionStorage(path), clock=clock)

    assert restored.load() is False
    assert not restored.is_authenticated
    assert json.loads(path.read_text()) == {}


def test_load_without_session_is_false():
    assert SessionContext(SessionStorage()).load() is False


def test_logout_clears_memory_and_storage():
    storage = SessionStorage()
    session = SessionContext(storage)
    session.reduce(LoginSuccess(user={"_id": "U-1"}, token="abc"))

    session.reduce(Logout())

    assert session.token is None and session.user is None
    assert storage.get(TOKEN_KEY) is None
    assert storage.get(EXPIRY_KEY) is None


def test_refresh_updates_token_and_expiry_only():
    clock = Clock()
    storage = SessionStorage()
    session = SessionContext(storage, clock=clock)
    session.reduce(LoginSuccess(user={"_id": "U-1"}, token="old", expires_in=60))

    clock.now += 30
    session.reduce(RefreshToken(token="new", expires_in=600))

    assert session.token == "new"
    assert session.token_expiry == NOW + 30 + 600
    assert session.user == {"_id": "U-1"}
    assert storage.get(TOKEN_KEY) == "new"


def test_update_user_merges_and_persists():
    storage = SessionStorage()
    session = SessionContext(storage)
    session.reduce(LoginSuccess(user={"_id": "U-1", "name": "Ada"}, token="abc"))

    session.reduce(UpdateUser(changes={"name": "Ada L."}))

    assert session.user == {"_id": "U-1", "name": "Ada L."}
    assert storage.get(USER_KEY) == {"_id": "U-1", "name": "Ada L."}


def test_restore_and_touch(tmp_path):
    path = tmp_path / "session.json"
    clock = Clock()
    SessionContext(SessionStorage(path), clock=clock).reduce(
        LoginSuccess(user={"_id": "U-1"}, token="abc", expires_in=60)
    )
    session = SessionContext(SessionStorage(path), clock=clock)

    session.reduce(RestoreAuth())
    clock.now += 5
    session.reduce(TouchActivity())

    assert session.token == "abc"
    assert session.last_activity == NOW + 5
    assert not session.is_expired


# ─── Store ───────────────────────────────────────────────


def test_store_dispatch_notifies_in_order():
    store = Store()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(LoginSuccess(user={"_id": "U-1"}, token="abc"))
    store.dispatch(ShowModal(type="success", title="Success", message="Saved"))
    unsubscribe()
    store.dispatch(Logout())

    assert [type(a).__name__ for a in seen] == ["LoginSuccess", "ShowModal"]
    assert store.token is None
    assert store.ui.response_modal.message == "Saved"
