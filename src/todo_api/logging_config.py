from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the process.

    Subsequent calls only adjust the level so that building several app
    instances (e.g. in tests) does not stack handlers.
    """
    global _configured
    resolved = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True
    root.setLevel(resolved)


def mask_secret(value: str, visible: int = 4) -> str:
    """Return a log-safe rendering of a secret value."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}..."
