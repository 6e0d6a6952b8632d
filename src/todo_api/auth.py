from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Request

from .errors import NotFound, Unauthorized
from .models import AccessTokenEntity
from .nonces import NonceIssuer
from .security import hash_password, verify_password
from .tokens import TokenStore
from .users import UserDirectory

logger = logging.getLogger(__name__)

SIGNIN_FAILED = "Invalid credentials or nonce"


# PUBLIC_INTERFACE
class Authenticator:
    """
    Exchanges username + password + server-issued nonce for an access token.

    The nonce is consumed before the credentials are checked, so every attempt
    that presents it spends it, successful or not.
    """

    def __init__(self, users: UserDirectory, nonces: NonceIssuer, tokens: TokenStore) -> None:
        self._users = users
        self._nonces = nonces
        self._tokens = tokens
        # Checked on the unknown-user path so it costs as much as a wrong password
        self._dummy_hash = hash_password(secrets.token_urlsafe(16))

    def sign_in(self, username: str, password: str, nonce: str) -> AccessTokenEntity:
        if not self._nonces.consume(nonce):
            reason = "replayed nonce" if self._nonces.is_consumed(nonce) else "unknown or expired nonce"
            logger.warning("Sign-in rejected for %r: %s", username, reason)
            raise Unauthorized(SIGNIN_FAILED)

        try:
            user = self._users.find_by_username(username)
        except NotFound as exc:
            verify_password(password, self._dummy_hash)
            logger.warning("Sign-in rejected for %r: unknown user", username)
            raise Unauthorized(SIGNIN_FAILED) from exc

        if not verify_password(password, user["password_hash"]):
            logger.warning("Sign-in rejected for %r: password mismatch", username)
            raise Unauthorized(SIGNIN_FAILED)

        token = self._tokens.issue(user)
        logger.info("User %r signed in (token id %s)", username, token["jti"])
        return token


def parse_authorization_header(header_value: Optional[str]) -> str:
    """
    Extract the token from an Authorization header value.

    Accepts both 'Bearer <token>' and a bare token. Raises Unauthorized when
    the header is missing or carries no token.
    """
    if not header_value or not header_value.strip():
        raise Unauthorized("Authorization header missing")

    raw = header_value.strip()
    if raw.lower().startswith("bearer"):
        parts = raw.split(None, 1)
        if parts[0].lower() == "bearer":
            if len(parts) < 2 or not parts[1].strip():
                raise Unauthorized("Authorization token missing")
            return parts[1].strip()
    return raw


# PUBLIC_INTERFACE
async def require_access_token(request: Request) -> AccessTokenEntity:
    """
    FastAPI dependency guarding protected routes.

    Resolves the presented token through the application's TokenStore and
    attaches it to request.state.auth. Any failure is a 401.
    """
    token_value = parse_authorization_header(request.headers.get("Authorization"))
    token = request.app.state.services.tokens.resolve(token_value)
    request.state.auth = token
    return token
