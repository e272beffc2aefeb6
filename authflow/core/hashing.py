"""Password hashing with bcrypt.

bcrypt is slow (~50-100ms at cost 10), so every call runs in a
worker thread via ``asyncio.to_thread``. Concurrent requests keep making
progress on the event loop while a hash is being computed, and no store
mutation is ever held open across the await.
"""

import asyncio
import logging

import bcrypt

from authflow.core.errors import HashingError

logger = logging.getLogger(__name__)

# bcrypt cost factor used when no explicit value is configured
DEFAULT_ROUNDS = 10


class SecretHasher:
    """Salted one-way hashing and verification of account passwords.

    Args:
        rounds: bcrypt work factor. Tests pass 4 to keep runs fast.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._rounds = rounds
        self._dummy_hash: bytes | None = None

    @property
    def rounds(self) -> int:
        """Configured bcrypt work factor."""
        return self._rounds

    async def hash(self, plaintext: str) -> str:
        """Hash a plaintext password with a fresh random salt.

        Args:
            plaintext: Password to hash.

        Returns:
            bcrypt hash string (salt and cost embedded).

        Raises:
            HashingError: If bcrypt fails. The original exception is chained
                for logs but its message never reaches clients.
        """
        try:
            hashed = await asyncio.to_thread(
                bcrypt.hashpw,
                plaintext.encode(),
                bcrypt.gensalt(rounds=self._rounds),
            )
        except (ValueError, TypeError) as exc:
            logger.error("bcrypt hashing failed: %s", type(exc).__name__)
            raise HashingError("Password hashing failed") from exc
        return hashed.decode()

    async def verify(self, plaintext: str, hashed: str | bytes) -> bool:
        """Check a plaintext password against a stored bcrypt hash.

        Comparison is constant-time inside bcrypt. A malformed hash yields
        False instead of raising.

        Args:
            plaintext: Candidate password.
            hashed: Stored bcrypt hash.

        Returns:
            True iff the plaintext reproduces the hash.
        """
        hashed_bytes = hashed.encode() if isinstance(hashed, str) else hashed
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw, plaintext.encode(), hashed_bytes
            )
        except ValueError:
            # Invalid salt / not a bcrypt hash
            return False

    async def burn(self, plaintext: str) -> None:
        """Spend the same bcrypt work as verify() without a real target.

        Used when no account matches a login attempt so the response time
        does not reveal whether the email is registered. The dummy hash is
        computed once per hasher with the configured cost factor.
        """
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                bcrypt.hashpw, b"authflow-dummy", bcrypt.gensalt(rounds=self._rounds)
            )
        await self.verify(plaintext, self._dummy_hash)
