from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .auth.core import MAX_PASSWORD_BYTES

NAME_MAX_LENGTH = 100
TEXT_MAX_LENGTH = 500
EMAIL_MAX_LENGTH = 254
MAX_RATING_COUNT = 100_000


def _whole_number(value: Any) -> Optional[int]:
    """Return *value* as an int when it is a JSON whole number (4 or 4.0), else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _required_text(value: Any, label: str, max_length: int | None = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must not be empty")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return value


# ---------------------------------------------------------------------------
# Public submissions
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    """A visitor's comment on a game page."""

    model_config = ConfigDict(populate_by_name=True)

    page_id: str = Field(..., alias="pageId", description="Address identifier of the game.")
    name: str = Field(..., description=f"Author name, at most {NAME_MAX_LENGTH} characters.")
    text: str = Field(..., description=f"Comment body, at most {TEXT_MAX_LENGTH} characters.")
    email: Optional[str] = Field(default=None, description="Optional contact address.")

    @field_validator("page_id", mode="before")
    @classmethod
    def validate_page_id(cls, v: Any) -> str:
        return _required_text(v, "pageId")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _required_text(v, "name", NAME_MAX_LENGTH)

    @field_validator("text", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> str:
        return _required_text(v, "text", TEXT_MAX_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Please provide a valid email address")
        v = v.strip()
        if not v:
            return None
        if "@" not in v or len(v) > EMAIL_MAX_LENGTH:
            raise ValueError("Please provide a valid email address")
        return v


class ManualCommentCreate(CommentCreate):
    """Admin-inserted comment, optionally back-dated."""

    timestamp: Optional[datetime] = Field(
        default=None,
        description="ISO 8601 date-time, e.g. 2024-01-01T12:00:00Z. Defaults to now.",
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v: Any) -> Optional[datetime]:
        if v is None or v == "":
            return None
        if not isinstance(v, str):
            raise ValueError("timestamp must be an ISO 8601 date-time string")
        try:
            parsed = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(
                "timestamp must be an ISO 8601 date-time (e.g. YYYY-MM-DDTHH:mm:ss.sssZ)"
            ) from None
        # Stored as UTC; naive input is taken to be UTC already.
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


class RatingCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_id: str = Field(..., alias="pageId")
    rating: int = Field(..., description="Whole number from 1 to 5.")

    @field_validator("page_id", mode="before")
    @classmethod
    def validate_page_id(cls, v: Any) -> str:
        return _required_text(v, "pageId")

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v: Any) -> int:
        rating = _whole_number(v)
        if rating is None or not 1 <= rating <= 5:
            raise ValueError("rating must be an integer between 1 and 5")
        return rating


def parse_rating_counts(body: Any, max_count: int = MAX_RATING_COUNT) -> Dict[int, int]:
    """
    Validate an admin ``{"1": n1, ..., "5": n5}`` payload.

    Every value 1..5 must be present with a whole-number count between 0 and
    *max_count*.
    Raises ValueError naming the first offending key.
    """
    if not isinstance(body, dict):
        raise ValueError("Rating counts must be an object keyed by rating value 1-5")
    counts: Dict[int, int] = {}
    for value in range(1, 6):
        raw = body.get(str(value))
        count = _whole_number(raw)
        if count is None or count < 0:
            raise ValueError(
                f"Rating count '{value}' must be a non-negative integer. Received: {raw!r}"
            )
        if count > max_count:
            raise ValueError(
                f"Rating count '{value}' must be at most {max_count}. Received: {raw!r}"
            )
        counts[value] = count
    return counts


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class AdminUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: str


class LoginResponse(BaseModel):
    token: str
    message: str
    user: AdminUserRead


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    @field_validator("current_password", mode="before")
    @classmethod
    def validate_current(cls, v: Any) -> str:
        if not isinstance(v, str) or not v:
            raise ValueError("currentPassword must not be empty")
        return v

    @field_validator("new_password", mode="before")
    @classmethod
    def validate_new(cls, v: Any) -> str:
        if not isinstance(v, str) or not v:
            raise ValueError("newPassword must not be empty")
        if len(v.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"newPassword must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class ProtectedUser(AdminUserRead):
    project_id: str


class ProtectedResponse(BaseModel):
    message: str
    user: ProtectedUser


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

class MessageResponse(BaseModel):
    message: str


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    text: str
    added_by_admin: bool
    timestamp: datetime


class AdminCommentRead(CommentRead):
    game_address_bar: str


class RatingSummary(BaseModel):
    count: int = 0
    average: float = 0.0


class RatingsUpdateResponse(BaseModel):
    message: str
    ratings: Dict[str, int]


class GameOverview(BaseModel):
    title: str
    ratings: Dict[str, int]
    comments: List[AdminCommentRead] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    message: str
