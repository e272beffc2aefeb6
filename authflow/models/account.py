"""Account model - the registered user.

In-memory record owned exclusively by AccountRepository. The bcrypt hash
lives only here; everything that leaves the service goes through
PublicAccount.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups (stripped, lower-case)."""
    return email.strip().lower()


@dataclass
class Account:
    """Registered account.

    Attributes:
        id: UUID primary key.
        name: Display name.
        email: Unique, normalized email address.
        secret_hash: bcrypt hash of the password. Never serialized.
        verified: Whether the email address has been confirmed.
        created_at: Registration timestamp (UTC).
    """

    name: str
    email: str
    secret_hash: str = field(repr=False)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    verified: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_public(self) -> "PublicAccount":
        """Snapshot of the account without the password hash."""
        return PublicAccount(
            id=self.id,
            name=self.name,
            email=self.email,
            verified=self.verified,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class PublicAccount:
    """Account view safe to return to callers."""

    id: uuid.UUID
    name: str
    email: str
    verified: bool
    created_at: datetime

    def to_response(self) -> dict:
        """JSON-ready payload for API responses."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "verified": self.verified,
            "created_at": self.created_at.isoformat(),
        }
