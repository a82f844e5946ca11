"""Admin user management and profile/auth payloads."""

from typing import Any, Optional

from pydantic import Field, field_validator

from vitrine.schemas.common import ApiModel

EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserQueryParams(ApiModel):
    page: Optional[int] = Field(1, ge=1)
    limit: Optional[int] = Field(10, ge=1)
    search: Optional[str] = None
    role: Optional[str] = Field(None, pattern=r"^(customer|user|admin)$")
    status: Optional[str] = Field(None, pattern=r"^(active|inactive)$")

    @field_validator("role", "status", mode="before")
    @classmethod
    def all_means_unfiltered(cls, v: Optional[str]) -> Optional[str]:
        # The admin filter dropdowns send "all" for no filter
        return None if v == "all" else v


class UpdateUserStatus(ApiModel):
    id: str = Field(..., min_length=1)
    is_active: bool = Field(..., alias="isActive")


class UpdateUserRole(ApiModel):
    id: str = Field(..., min_length=1)
    role: str = Field(..., pattern=r"^(customer|user|admin)$")


class LoginRequest(ApiModel):
    email: str = Field(..., pattern=EMAIL)
    password: str = Field(..., min_length=1)


class RegisterRequest(ApiModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL)
    password: str = Field(..., min_length=6)


class ProfileUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    address: Optional[dict[str, Any]] = None
    preferences: Optional[dict[str, Any]] = None
