"""Token model - single-use verification and password-reset tokens.

Stored by digest only. The raw value exists once, inside the IssuedToken
handed back to the caller that requested it, and is never persisted.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class TokenPurpose(str, Enum):
    """What a token authorizes."""

    VERIFICATION = "verification"
    RESET = "reset"


@dataclass
class Token:
    """Stored token metadata.

    Attributes:
        lookup_digest: SHA-256 hex digest of the raw value (storage key).
        owner_account_id: Account the token was issued for.
        owner_email: Owner's email at issue time (display only).
        purpose: Verification or password reset.
        expires_at: Absolute expiry (UTC).
        created_at: Issue time (UTC).
    """

    lookup_digest: str
    owner_account_id: uuid.UUID
    owner_email: str
    purpose: TokenPurpose
    expires_at: datetime
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime) -> bool:
        """A token is expired strictly after its expires_at."""
        return now > self.expires_at


@dataclass(frozen=True)
class IssuedToken:
    """Result of issuing a token: the raw value plus its stored record."""

    raw_value: str = field(repr=False)
    token: Token

    @property
    def expires_at(self) -> datetime:
        return self.token.expires_at
