from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo item for non-ORM storage
    backends.

    Fields:
    - id: Unique integer identifier
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional detailed description
    - completed: Boolean completion flag
    - due_date: Optional due datetime, timezone-aware UTC
    - created_at: UTC creation timestamp
    - updated_at: UTC last update timestamp
    """

    id: int
    title: str
    description: Optional[str]
    completed: bool
    due_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """A user able to sign in. Only the PBKDF2 hash of the password is kept."""

    id: int
    username: str
    password_hash: str
    created_at: datetime


class NonceEntity(TypedDict):
    value: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool


class AccessTokenEntity(TypedDict):
    value: str
    jti: str
    subject: int
    username: str
    issued_at: datetime
    expires_at: datetime
