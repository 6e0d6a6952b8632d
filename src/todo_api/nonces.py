from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Optional

from .logging_config import mask_secret
from .models import NonceEntity

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class NonceIssuer:
    """
    Issues single-use sign-in challenges.

    Pending nonces are kept keyed by value. consume() checks and flips the
    consumed flag under one lock, so among concurrent callers presenting the
    same value exactly one gets True.
    """

    def __init__(self, ttl_seconds: int = 300, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = RLock()
        self._pending: dict[str, NonceEntity] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self) -> NonceEntity:
        now = self._clock()
        nonce: NonceEntity = {
            "value": secrets.token_urlsafe(32),
            "issued_at": now,
            "expires_at": now + self._ttl,
            "consumed": False,
        }
        with self._lock:
            self._prune(now)
            self._pending[nonce["value"]] = nonce
        logger.debug("Issued nonce %s", mask_secret(nonce["value"]))
        return nonce.copy()

    def consume(self, value: str) -> bool:
        """Spend a nonce. False when it is unknown, expired or already spent."""
        if not value:
            return False
        now = self._clock()
        with self._lock:
            nonce = self._pending.get(value)
            if nonce is None or nonce["consumed"] or nonce["expires_at"] <= now:
                return False
            # Spent entries stay until they expire so replays are told apart from typos in the log.
            nonce["consumed"] = True
            return True

    def is_consumed(self, value: str) -> bool:
        with self._lock:
            nonce = self._pending.get(value)
            return nonce is not None and nonce["consumed"]

    def pending_count(self) -> int:
        """Number of issued nonces still available for a sign-in."""
        with self._lock:
            return sum(1 for n in self._pending.values() if not n["consumed"])

    def _prune(self, now: datetime) -> None:
        expired = [v for v, n in self._pending.items() if n["expires_at"] <= now]
        for value in expired:
            del self._pending[value]
        if expired:
            logger.debug("Pruned %d expired nonces", len(expired))
