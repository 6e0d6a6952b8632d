from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from .auth import Authenticator
from .nonces import NonceIssuer
from .repositories import InMemoryRepository, Repository
from .settings import Settings
from .tokens import TokenStore
from .users import InMemoryUserDirectory, UserDirectory

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
@dataclass
class Services:
    """Collaborators constructed once at start-up and shared by all requests."""

    users: UserDirectory
    nonces: NonceIssuer
    tokens: TokenStore
    authenticator: Authenticator
    todos: Repository


def make_repository(settings: Settings) -> Repository:
    """
    Return the configured todo repository.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()


# PUBLIC_INTERFACE
def build_services(settings: Settings) -> Services:
    users = InMemoryUserDirectory()
    if settings.seed_username and settings.seed_password:
        users.add_user(settings.seed_username, settings.seed_password)
    else:
        logger.warning("SEED_USERNAME/SEED_PASSWORD not set; no user can sign in until one is added")

    nonces = NonceIssuer(ttl_seconds=settings.nonce_ttl_seconds)
    tokens = TokenStore(
        secret=settings.jwt_secret,
        ttl_minutes=settings.access_token_ttl_minutes,
        algorithm=settings.jwt_algorithm,
    )
    return Services(
        users=users,
        nonces=nonces,
        tokens=tokens,
        authenticator=Authenticator(users, nonces, tokens),
        todos=make_repository(settings),
    )


# PUBLIC_INTERFACE
def get_services(request: Request) -> Services:
    """FastAPI dependency returning the application's service bundle."""
    return request.app.state.services


def get_repository(request: Request) -> Repository:
    return get_services(request).todos
