"""Token generation for email verification and password reset.

Raw tokens are 256 bits from ``secrets`` encoded as 64 hex characters.
Storage uses a SHA-256 digest of the raw value: tokens are high-entropy,
so a fast digest is enough (no bcrypt-style stretching) and lookups stay
O(1) by key.
"""

import hashlib
import secrets
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from authflow.models.token import IssuedToken, Token, TokenPurpose

# 32 bytes = 256 bits of entropy -> 64 hex characters
TOKEN_BYTES = 32


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


def digest_token(raw_value: str) -> str:
    """SHA-256 hex digest used as the storage key for a raw token."""
    return hashlib.sha256(raw_value.encode()).hexdigest()


class TokenGenerator:
    """Issues opaque single-use tokens with an attached expiry.

    Args:
        now: Clock returning an aware UTC datetime. Injected by tests.
    """

    def __init__(self, now: Callable[[], datetime] = utc_now) -> None:
        self._now = now

    def issue(
        self,
        purpose: TokenPurpose,
        owner_account_id: uuid.UUID,
        owner_email: str,
        validity_hours: float,
    ) -> IssuedToken:
        """Generate a new token for an account.

        Args:
            purpose: What the token authorizes.
            owner_account_id: Account the token belongs to.
            owner_email: Owner's email (display only).
            validity_hours: Lifetime in hours. Must be positive.

        Returns:
            IssuedToken carrying the raw value (exactly once) and the
            record to store.

        Raises:
            ValueError: If validity_hours is not positive.
        """
        if validity_hours <= 0:
            msg = f"validity_hours must be positive, got {validity_hours}"
            raise ValueError(msg)

        raw_value = secrets.token_hex(TOKEN_BYTES)
        now = self._now()
        token = Token(
            lookup_digest=digest_token(raw_value),
            owner_account_id=owner_account_id,
            owner_email=owner_email,
            purpose=purpose,
            expires_at=now + timedelta(hours=validity_hours),
            created_at=now,
        )
        return IssuedToken(raw_value=raw_value, token=token)
