"""Admin user management and store settings."""

from typing import Any

from vitrine.api.base import ApiSlice, mutation, query
from vitrine.cache.tags import Tag
from vitrine.http.base_query import FetchArgs
from vitrine.schemas.users import UpdateUserRole, UpdateUserStatus, UserQueryParams


def _user_changed(result, error, arg):
    user_id = arg if isinstance(arg, str) else arg.id
    return [Tag("User", user_id), "Users", "UserStats", "TopUsers"]


class UsersApi(ApiSlice):
    reducer_path = "usersApi"
    base_path = "/admin"
    tag_types = ("Users", "User", "UserStats", "TopUsers")

    @query(provides_tags=["Users"], arg_model=UserQueryParams)
    def get_users(self, params: UserQueryParams) -> FetchArgs:
        return FetchArgs("users", params=params.params())

    @query(provides_tags=["UserStats"])
    def get_user_stats(self) -> FetchArgs:
        return FetchArgs("users/stats")

    @query(provides_tags=["TopUsers"])
    def get_top_users(self, limit: int | None) -> FetchArgs:
        return FetchArgs("users/top", params={"limit": limit or 5})

    @query(provides_tags=lambda result, error, id: [Tag("User", id)])
    def get_user(self, id: str) -> FetchArgs:
        return FetchArgs(f"users/{id}")

    @mutation(invalidates_tags=_user_changed, arg_model=UpdateUserStatus)
    def update_user_status(self, req: UpdateUserStatus) -> FetchArgs:
        status = "active" if req.is_active else "inactive"
        return FetchArgs(f"users/{req.id}/status", method="PATCH", body={"status": status})

    @mutation(invalidates_tags=_user_changed, arg_model=UpdateUserRole)
    def update_user_role(self, req: UpdateUserRole) -> FetchArgs:
        return FetchArgs(f"users/{req.id}/role", method="PATCH", body={"role": req.role})

    @mutation(invalidates_tags=_user_changed)
    def delete_user(self, id: str) -> FetchArgs:
        return FetchArgs(f"users/{id}", method="DELETE")


class SettingsApi(ApiSlice):
    """Store-wide settings document (shipping, tax, payments...)."""

    reducer_path = "settingsApi"
    base_path = "/admin"
    tag_types = ("Settings",)

    @query(provides_tags=["Settings"])
    def get_settings(self) -> FetchArgs:
        return FetchArgs("settings")

    @mutation(invalidates_tags=["Settings"])
    def update_settings(self, changes: dict[str, Any]) -> FetchArgs:
        return FetchArgs("settings", method="PATCH", body=dict(changes or {}))
