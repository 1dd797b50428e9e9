"""
API request and response models for BudgetTracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
forum/models.py, which own the internal domain representation. Route handlers
map between the two.

Password hashes never appear in any response model.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Account
from forum.models import CommentView, PostView

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt only reads the first 72 bytes of a password.
PASSWORD_MAX_LEN = 72

CONTENT_MAX_LEN = 5000


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


# Roles a caller may request on public signup. OWNER accounts are created
# with the operator CLI only.
class SignupRoleEnum(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    role is optional and accepted in any case ("admin", "ADMIN"). Omitted
    means USER. An ADMIN signup is stored pending owner approval. OWNER is
    refused with 422.

    username and password are stored exactly as sent, matching LoginRequest.
    """

    username: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LEN)
    role: Optional[SignupRoleEnum] = None
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LEN)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    role: RoleEnum


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class AccountResponse(BaseModel):
    """One account as seen by admins -- policy state included, no password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: RoleEnum
    admin_approved: bool
    banned: bool
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            role=RoleEnum(account.role.value),
            admin_approved=account.admin_approved,
            banned=account.banned,
            created_at=account.created_at or "",
        )


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/profile.

    The five profile attributes are overwritten as sent (omitted -> null).
    username is only changed when present and different from the current one.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    username: Optional[str] = Field(default=None, min_length=1, max_length=255)
    monthly_income: Optional[float] = None
    savings: Optional[float] = None
    target_expenses: Optional[float] = None
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: RoleEnum
    monthly_income: Optional[float]
    savings: Optional[float]
    target_expenses: Optional[float]
    first_name: Optional[str]
    last_name: Optional[str]
    # Present only after a username change; tokens for the old name stop working.
    access_token: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account, access_token: Optional[str] = None) -> "ProfileResponse":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            role=RoleEnum(account.role.value),
            monthly_income=account.monthly_income,
            savings=account.savings,
            target_expenses=account.target_expenses,
            first_name=account.first_name,
            last_name=account.last_name,
            access_token=access_token,
        )


# ---------------------------------------------------------------------------
# Forum
# ---------------------------------------------------------------------------


class PostRequest(BaseModel):
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LEN)

    @field_validator("content")
    @classmethod
    def reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class CommentRequest(PostRequest):
    pass


class CommentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    author: str
    content: str
    created_at: str
    updated_at: Optional[str]
    like_count: int
    liked_by_current_user: bool
    editable: bool

    @classmethod
    def from_view(cls, view: CommentView) -> "CommentResponse":
        return cls(
            id=view.id,
            author=view.author,
            content=view.content,
            created_at=view.created_at,
            updated_at=view.updated_at,
            like_count=view.like_count,
            liked_by_current_user=view.liked_by_viewer,
            editable=view.editable,
        )


class PostResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    author: str
    content: str
    created_at: str
    updated_at: Optional[str]
    like_count: int
    liked_by_current_user: bool
    editable: bool
    comments: list[CommentResponse] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: PostView) -> "PostResponse":
        return cls(
            id=view.id,
            author=view.author,
            content=view.content,
            created_at=view.created_at,
            updated_at=view.updated_at,
            like_count=view.like_count,
            liked_by_current_user=view.liked_by_viewer,
            editable=view.editable,
            comments=[CommentResponse.from_view(c) for c in view.comments],
        )


class LikeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    liked: bool


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


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
    components: dict[str, str]
