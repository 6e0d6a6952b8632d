from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

T = TypeVar("T")


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """
    Render a timestamp as ISO8601 UTC with millisecond precision and a 'Z'
    suffix, e.g. '2025-01-31T13:45:00.123Z'.
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due_date input into a UTC datetime.
    - Strings are parsed as ISO8601; a bare date is set to 00:00.
    - A date (not datetime) is promoted to midnight.
    - Sub-millisecond precision is dropped so stored values match what is returned.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        s = value.strip()
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string "
                    "(e.g., '2025-01-31' or '2025-01-31T13:45:00.000Z')."
                ) from e
            parsed = datetime(d.year, d.month, d.day)
    else:
        raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")

    try:
        parsed = ensure_utc(parsed)
    except OverflowError as e:
        raise ValueError("due_date out of range") from e
    return parsed.replace(microsecond=(parsed.microsecond // 1000) * 1000)


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Fields of a Todo as sent by clients on create and on full replacement.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "completed": False,
                "due_date": "2025-02-01T09:00:00.000Z",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(default=False, description="Completion status flag")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the todo item. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        s = v.strip()
        if not (1 <= len(s) <= 200):
            raise ValueError("title length must be between 1 and 200 characters")
        return s

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoRequest(BaseModel):
    """Request body for create and update: the todo fields wrapped under 'data'."""

    data: TodoCreate


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "completed": False,
                "due_date": "2025-02-01T09:00:00.000Z",
                "created_at": "2025-01-25T10:15:30.123Z",
                "updated_at": "2025-01-26T09:00:00.000Z",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(..., description="Completion status flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as ISO8601 UTC")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @field_serializer("due_date", "created_at", "updated_at")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value)


class TodoList(BaseModel):
    todos: List[TodoOut]


class TodoPage(BaseModel):
    """A page of todos returned when limit/offset are given."""

    todos: List[TodoOut] = Field(..., description="List of Todo items")
    total: int = Field(..., description="Total number of items matching the query")
    limit: int = Field(..., description="Limit applied to the query")
    offset: int = Field(..., description="Offset applied to the query")


class TodoDeleted(BaseModel):
    id: int


# PUBLIC_INTERFACE
class Envelope(BaseModel, Generic[T]):
    """Response envelope shared by every endpoint."""

    status: bool = Field(True, description="True on success")
    message: str = Field(..., description="Human readable outcome")
    data: Optional[T] = None


class NonceOut(BaseModel):
    nonce: str = Field(..., description="Single-use value to echo back on sign-in")
    expires_at: datetime

    @field_serializer("expires_at")
    def serialize_expiry(self, value: datetime) -> Optional[str]:
        return format_timestamp(value)


# PUBLIC_INTERFACE
class SignInRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "s3cret", "nonce": "<from /auth/nonces>"}}
    )

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    nonce: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_at: datetime

    @field_serializer("expires_at")
    def serialize_expiry(self, value: datetime) -> Optional[str]:
        return format_timestamp(value)
