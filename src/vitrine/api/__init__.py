"""API slices — one class per REST resource.

Learn: Each slice owns its own query cache and tag namespace, the same
way each storefront resource had its own createApi() call. Slices never
invalidate each other's tags; cross-resource freshness comes from the
realtime layer or an explicit refetch.
"""

from vitrine.api.analytics import AnalyticsApi
from vitrine.api.auth import AuthApi
from vitrine.api.base import (
    ApiSlice,
    BoundEndpoint,
    Endpoint,
    QuerySubscription,
    UnknownEndpointError,
    mutation,
    query,
)
from vitrine.api.catalog import CategoriesApi, ProductsApi, ProductTypesApi, ReviewsApi
from vitrine.api.orders import OrdersApi
from vitrine.api.returns import ReturnsApi
from vitrine.api.users import SettingsApi, UsersApi

__all__ = [
    "AnalyticsApi",
    "ApiSlice",
    "AuthApi",
    "BoundEndpoint",
    "CategoriesApi",
    "Endpoint",
    "OrdersApi",
    "ProductTypesApi",
    "ProductsApi",
    "QuerySubscription",
    "ReturnsApi",
    "ReviewsApi",
    "SettingsApi",
    "UnknownEndpointError",
    "UsersApi",
    "mutation",
    "query",
]
