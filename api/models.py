"""
API request and response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field length rules (account >= 2, password >= 8, ...) are deliberately NOT
declared here: AuthService enforces them in a fixed order with its own error
kinds. Only upper bounds live here, to cap request size.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import MAX_ROW_ID, UserQuery
from auth.views import PublicView

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    account: str = Field(max_length=255)
    password: str = Field(max_length=255)
    confirm_password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    account: str = Field(max_length=255)
    password: str = Field(max_length=255)


class UserSearchRequest(BaseModel):
    """Request body for POST /api/v1/users/search (admin only)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(default=None, ge=1, le=MAX_ROW_ID)
    display_name: Optional[str] = Field(default=None, max_length=255)
    account: Optional[str] = Field(default=None, max_length=255)
    profile: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=30)
    sort_field: Optional[str] = Field(default=None, max_length=30)
    sort_order: str = Field(default="descend", max_length=10)
    page: int = 1
    page_size: int = 10

    def to_query(self) -> UserQuery:
        return UserQuery(**self.model_dump())


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class LogoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool


class CapabilityResponse(BaseModel):
    """Principal resolved through the token session store."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    account: str
    role: str
    is_admin: bool


class UserPage(BaseModel):
    """One page of desensitized users."""

    model_config = ConfigDict(frozen=True)

    items: list[PublicView]
    total: int
    page: int
    page_size: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
