"""Token refresh on 401.

Learn: When a request comes back 401 the session token has most likely
expired. with_reauth() asks the backend for a new one (POST /refresh,
which authenticates via the old token or a cookie), stores it, and
replays the original request exactly once. If refresh fails, the session
is logged out and the caller gets the original 401.

A lock serialises refreshes: ten concurrent 401s produce one refresh
call, and the other nine simply retry with the token it obtained.

Only requests that carried a token are retried. A 401 from a login
attempt, or from the refresh endpoint itself, is returned as-is.
"""

import asyncio
from typing import Union

import structlog

from vitrine.http.base_query import (
    BaseQueryFn,
    FetchArgs,
    QueryApi,
    QueryResult,
    as_fetch_args,
)
from vitrine.state.actions import Logout, RefreshToken

logger = structlog.get_logger()


def with_reauth(inner: BaseQueryFn, refresh_url: str = "/refresh") -> BaseQueryFn:
    lock = asyncio.Lock()

    async def wrapped(args: Union[FetchArgs, str], api: QueryApi) -> QueryResult:
        args = as_fetch_args(args)
        token_used = api.store.token
        result = await inner(args, api)

        if result.error is None or result.error.status != 401:
            return result
        # Anonymous requests (a failed login) and the refresh call itself
        # have no session to rescue
        if not token_used or args.url == refresh_url:
            return result

        async with lock:
            # Another coroutine may have refreshed while we waited
            if api.store.token and api.store.token != token_used:
                return await inner(args, api)

            refreshed = await inner(FetchArgs(url=refresh_url, method="POST"), api)
            data = refreshed.data if isinstance(refreshed.data, dict) else {}

            if refreshed.error is None and data.get("success") and data.get("token"):
                logger.info("auth.token_refreshed", endpoint=api.endpoint)
                api.store.dispatch(RefreshToken(
                    token=data["token"],
                    expires_in=data.get("expiresIn"),
                ))
            else:
                logger.info("auth.refresh_failed", endpoint=api.endpoint)
                api.store.dispatch(Logout())
                return result

        return await inner(args, api)

    return wrapped
