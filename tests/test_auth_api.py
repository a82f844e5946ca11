"""Auth slice + re-auth middleware tests.

Learn: The auth slice is the only one that changes the session, and the
only one behind with_reauth(). Its own endpoints never raise a modal.
"""

import asyncio

import pytest

from fake_backend import ADMIN, PASSWORD
from vitrine.http.base_query import FetchArgs, FetchError, QueryApi, QueryResult
from vitrine.http.reauth import with_reauth
from vitrine.state.actions import LoginSuccess
from vitrine.state.store import Store


async def _login(shop):
    return await shop.auth.login({"email": ADMIN["email"], "password": PASSWORD})


# ─── Login / logout ──────────────────────────────────────


@pytest.mark.asyncio
async def test_login_stores_session_without_modal(shop, modals):
    result = await _login(shop)

    assert result.ok
    assert shop.session.token == "token-2"
    assert shop.session.user["email"] == ADMIN["email"]
    assert modals == []


@pytest.mark.asyncio
async def test_failed_login_leaves_session_empty(shop, modals):
    result = await shop.auth.login({"email": ADMIN["email"], "password": "wrong"})

    assert result.error.status == 401
    assert result.error.message == "Invalid credentials"
    assert not shop.session.is_authenticated
    assert modals == []


@pytest.mark.asyncio
async def test_failed_login_does_not_try_to_refresh(shop, backend):
    await shop.auth.login({"email": ADMIN["email"], "password": "wrong"})

    assert backend.count("POST", "/auth/refresh") == 0
    assert shop.session.token is None


@pytest.mark.asyncio
async def test_register_logs_in(shop):
    await shop.auth.register({"name": "Cy", "email": "cy@shop.test", "password": "hunter22"})
    assert shop.session.user["name"] == "Cy"
    assert shop.session.is_authenticated


@pytest.mark.asyncio
async def test_logout_clears_session_even_if_server_fails(shop, backend):
    await _login(shop)
    backend.logout_fails = True

    result = await shop.auth.logout()

    assert result.error.status == 500
    assert not shop.session.is_authenticated


@pytest.mark.asyncio
async def test_me_sends_bearer_token(shop, backend):
    await _login(shop)

    result = await shop.auth.get_me()

    assert result.data["data"]["email"] == ADMIN["email"]
    assert backend.last_request("GET", "/auth/me")["headers"]["authorization"] == "Bearer token-2"


@pytest.mark.asyncio
async def test_profile_update_invalidates_me(shop, backend, modals):
    await _login(shop)
    me = await shop.auth.get_me.subscribe()

    await shop.auth.update_profile({"name": "Ada L."})

    assert backend.count("GET", "/auth/me") == 2
    assert modals[-1].message == "Profile updated"
    me.unsubscribe()


# ─── Re-auth ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_and_request_retried(shop, backend):
    shop.store.dispatch(LoginSuccess(user=ADMIN, token="stale"))

    result = await shop.auth.get_me()

    assert result.ok
    assert shop.session.token == "token-2"
    assert backend.count("GET", "/auth/me") == 2
    assert backend.count("POST", "/auth/refresh") == 1


@pytest.mark.asyncio
async def test_failed_refresh_logs_out(shop, backend):
    shop.store.dispatch(LoginSuccess(user=ADMIN, token="stale"))
    backend.refresh_ok = False

    result = await shop.auth.get_me()

    assert result.error.status == 401
    assert not shop.session.is_authenticated


@pytest.mark.asyncio
async def test_refresh_token_endpoint(shop, backend):
    await _login(shop)

    await shop.auth.refresh_token()
    assert shop.session.token == "token-3"

    backend.refresh_ok = False
    await shop.auth.refresh_token()
    assert not shop.session.is_authenticated


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh():
    store = Store()
    store.dispatch(LoginSuccess(user={"_id": "U-1"}, token="stale"))
    calls = []

    async def inner(args, api):
        calls.append((args.url, api.store.token))
        await asyncio.sleep(0)
        if args.url == "/refresh":
            return QueryResult(data={"success": True, "token": "fresh"})
        if api.store.token != "fresh":
            return QueryResult(error=FetchError(status=401, data={"message": "expired"}))
        return QueryResult(data={"ok": True})

    wrapped = with_reauth(inner)
    api = QueryApi(store, "get_me")

    results = await asyncio.gather(*(wrapped(FetchArgs("/me"), api) for _ in range(5)))

    assert all(r.ok for r in results)
    assert [c for c in calls if c[0] == "/refresh"] == [("/refresh", "stale")]
    assert store.token == "fresh"


@pytest.mark.asyncio
async def test_non_401_errors_pass_through():
    store = Store()
    calls = []

    async def inner(args, api):
        calls.append(args.url)
        return QueryResult(error=FetchError(status=500, data={}))

    result = await with_reauth(inner)(FetchArgs("/me"), QueryApi(store, "get_me"))

    assert result.error.status == 500
    assert calls == ["/me"]
