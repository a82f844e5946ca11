"""HTTP layer: the base query and the middleware that wraps it."""

from vitrine.http.base_query import (
    ApiError,
    BaseQuery,
    BaseQueryFn,
    FetchArgs,
    FetchError,
    QueryApi,
    QueryResult,
)
from vitrine.http.notifications import ResponseMessages, with_notifications
from vitrine.http.reauth import with_reauth

__all__ = [
    "ApiError",
    "BaseQuery",
    "BaseQueryFn",
    "FetchArgs",
    "FetchError",
    "QueryApi",
    "QueryResult",
    "ResponseMessages",
    "with_notifications",
    "with_reauth",
]
