"""Shared client state: the store, its actions, the session and UI slices."""

from vitrine.state.actions import (
    HideModal,
    LoginSuccess,
    Logout,
    RefreshToken,
    RestoreAuth,
    ShowModal,
    TouchActivity,
    UpdateUser,
)
from vitrine.state.session import SessionContext, SessionStorage
from vitrine.state.store import Store

__all__ = [
    "HideModal",
    "LoginSuccess",
    "Logout",
    "RefreshToken",
    "RestoreAuth",
    "SessionContext",
    "SessionStorage",
    "ShowModal",
    "Store",
    "TouchActivity",
    "UpdateUser",
]
