"""Store actions.

Learn: Every change to shared client state is one of these value
objects passed to Store.dispatch(). Reducers pattern-match on the type;
nothing mutates state directly.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

ModalType = Literal["success", "error", "warning"]


# ─── UI ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ShowModal:
    type: ModalType
    title: str
    message: str
    errors: Optional[dict[str, list[str]]] = None
    auto_close: Optional[bool] = None  # defaults to True for success
    auto_close_delay: Optional[int] = None  # ms


@dataclass(frozen=True)
class HideModal:
    pass


# ─── Auth / session ──────────────────────────────────────


@dataclass(frozen=True)
class LoginSuccess:
    user: dict[str, Any]
    token: str
    expires_in: Optional[float] = None  # seconds


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class RefreshToken:
    token: str
    expires_in: Optional[float] = None  # seconds


@dataclass(frozen=True)
class RestoreAuth:
    pass


@dataclass(frozen=True)
class UpdateUser:
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TouchActivity:
    pass
