from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock

from .errors import NotFound
from .models import UserEntity
from .security import hash_password

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class UserDirectory(ABC):
    """Read access to the users allowed to sign in."""

    @abstractmethod
    def find_by_username(self, username: str) -> UserEntity:
        """Return the user with exactly this username or raise NotFound."""

    @abstractmethod
    def add_user(self, username: str, password: str) -> UserEntity:
        """Create a user out of band (seeding, admin tooling)."""


class InMemoryUserDirectory(UserDirectory):
    """
    Thread-safe in-memory user directory. Usernames are matched exactly
    (case-sensitive, no normalization).
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: dict[str, UserEntity] = {}
        self._next_id = 1

    def find_by_username(self, username: str) -> UserEntity:
        with self._lock:
            user = self._users.get(username)
            if user is None:
                raise NotFound("User not found!")
            return user.copy()

    def add_user(self, username: str, password: str) -> UserEntity:
        if not username or not password:
            raise ValueError("username and password are required")
        password_hash = hash_password(password)
        with self._lock:
            if username in self._users:
                raise ValueError(f"user {username!r} already exists")
            user: UserEntity = {
                "id": self._next_id,
                "username": username,
                "password_hash": password_hash,
                "created_at": datetime.now(timezone.utc),
            }
            self._next_id += 1
            self._users[username] = user
        logger.info("Registered user %s (id=%s)", username, user["id"])
        return user.copy()
