"""Auth — login/register/logout, the current user, token refresh.

Learn: This slice is the only one whose results change the session.
Each endpoint carries an on_result hook that dispatches the matching
store action:

    login / register  success → LoginSuccess(user, token)
    logout            always  → Logout (even if the server call fails)
    me                failure → Logout
    refresh           success → RefreshToken, failure → Logout

Its base query adds the re-auth layer under the notification layer, and
the notification layer stays quiet for the auth endpoints themselves.
A failed /me on startup is not worth a modal.
"""

from vitrine.api.base import ApiSlice, mutation, query
from vitrine.http.base_query import BaseQuery, BaseQueryFn, FetchArgs, QueryResult
from vitrine.http.notifications import with_notifications
from vitrine.http.reauth import with_reauth
from vitrine.schemas.users import LoginRequest, ProfileUpdate, RegisterRequest
from vitrine.state.actions import LoginSuccess, Logout, RefreshToken

AUTH_ENDPOINTS = ("/login", "/register", "/logout", "/me", "/refresh")


def is_auth_endpoint(args: FetchArgs) -> bool:
    return any(path in args.url for path in AUTH_ENDPOINTS)


def _store_login(api: ApiSlice, arg, result: QueryResult) -> None:
    data = result.data if isinstance(result.data, dict) else {}
    if result.ok and data.get("token"):
        api.store.dispatch(LoginSuccess(
            user=data.get("data") or {},
            token=data["token"],
            expires_in=data.get("expiresIn"),
        ))


def _clear_session(api: ApiSlice, arg, result: QueryResult) -> None:
    api.store.dispatch(Logout())


def _logout_on_failure(api: ApiSlice, arg, result: QueryResult) -> None:
    if not result.ok:
        api.store.dispatch(Logout())


def _store_refreshed(api: ApiSlice, arg, result: QueryResult) -> None:
    data = result.data if isinstance(result.data, dict) else {}
    if result.ok and data.get("token"):
        api.store.dispatch(RefreshToken(token=data["token"], expires_in=data.get("expiresIn")))
    else:
        api.store.dispatch(Logout())


class AuthApi(ApiSlice):
    reducer_path = "authApi"
    base_path = "/auth"
    tag_types = ("User",)

    def build_base_query(self, raw: BaseQuery) -> BaseQueryFn:
        return with_notifications(
            with_reauth(raw, refresh_url="/refresh"),
            skip=is_auth_endpoint,
            error_title=self.error_title,
            success_title=self.success_title,
        )

    @mutation(arg_model=LoginRequest, on_result=_store_login)
    def login(self, req: LoginRequest) -> FetchArgs:
        return FetchArgs("/login", method="POST", body=req.body())

    @mutation(arg_model=RegisterRequest, on_result=_store_login)
    def register(self, req: RegisterRequest) -> FetchArgs:
        return FetchArgs("/register", method="POST", body=req.body())

    @mutation(on_result=_clear_session)
    def logout(self) -> FetchArgs:
        return FetchArgs("/logout", method="GET")

    @query(provides_tags=["User"], on_result=_logout_on_failure)
    def get_me(self) -> FetchArgs:
        return FetchArgs("/me")

    @mutation(on_result=_store_refreshed)
    def refresh_token(self) -> FetchArgs:
        return FetchArgs("/refresh", method="POST")

    @mutation(invalidates_tags=["User"], arg_model=ProfileUpdate)
    def update_profile(self, req: ProfileUpdate) -> FetchArgs:
        return FetchArgs("/profile", method="PUT", body=req.body())
