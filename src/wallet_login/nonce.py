"""Challenge nonce generation."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from .errors import InternalFailureError

# Nonces are drawn from [0, 2^130 - 1)
NONCE_BITS = 130
NONCE_UPPER_BOUND = (1 << NONCE_BITS) - 1


def generate_nonce() -> str:
    """Generate a fresh challenge nonce as a base-10 string.

    Raises:
        InternalFailureError: If the system random source is unavailable.
    """
    try:
        value = secrets.randbelow(NONCE_UPPER_BOUND)
    except (OSError, NotImplementedError) as e:
        raise InternalFailureError(f"Random source unavailable: {e}") from e
    return str(value)


def is_nonce_expired(
    issued_at: datetime,
    ttl_seconds: int,
    now: datetime | None = None,
) -> bool:
    """Check whether a nonce issued at issued_at is older than ttl_seconds.

    A ttl of 0 disables expiry.
    """
    if ttl_seconds <= 0:
        return False
    now = now or datetime.now(timezone.utc)
    return now - issued_at > timedelta(seconds=ttl_seconds)
