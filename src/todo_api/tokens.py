from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Optional

import jwt

from .errors import Unauthorized
from .models import AccessTokenEntity, UserEntity

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TokenStore:
    """
    Mints HS256 access tokens and keeps the issued ones by token id (jti).

    A token is accepted only when its signature and expiry verify and the jti
    is still held by this store, so a token signed with the right secret by
    another process instance is not enough.
    """

    def __init__(
        self,
        secret: str,
        ttl_minutes: int = 60,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if algorithm != "HS256":
            raise ValueError("TokenStore supports HS256 only.")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = RLock()
        self._tokens: dict[str, AccessTokenEntity] = {}

    def issue(self, user: UserEntity) -> AccessTokenEntity:
        now = self._clock()
        expires_at = now + self._ttl
        jti = uuid.uuid4().hex
        claims = {
            "sub": str(user["id"]),
            "username": user["username"],
            "jti": jti,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        value = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        token: AccessTokenEntity = {
            "value": value,
            "jti": jti,
            "subject": user["id"],
            "username": user["username"],
            "issued_at": now,
            "expires_at": expires_at,
        }
        with self._lock:
            self._prune(now)
            self._tokens[jti] = token
        return token.copy()

    def resolve(self, value: str) -> AccessTokenEntity:
        """Return the stored token for a presented value or raise Unauthorized."""
        try:
            claims = jwt.decode(
                value,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "jti", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("Rejected expired access token")
            raise Unauthorized("Access token expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid access token: %s", exc)
            raise Unauthorized("Invalid access token") from exc

        now = self._clock()
        with self._lock:
            token = self._tokens.get(claims["jti"])
            if token is None or token["value"] != value:
                logger.info("Rejected access token with unknown id")
                raise Unauthorized("Invalid access token")
            if token["expires_at"] <= now:
                del self._tokens[claims["jti"]]
                raise Unauthorized("Access token expired")
            return token.copy()

    def _prune(self, now: datetime) -> None:
        expired = [jti for jti, t in self._tokens.items() if t["expires_at"] <= now]
        for jti in expired:
            del self._tokens[jti]
