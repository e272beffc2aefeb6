"""In-memory token store for verification and password-reset tokens.

Tokens are keyed by the SHA-256 digest of their raw value, one map per
purpose, so a dump of the store never contains a usable token and a
verification token can never be redeemed as a reset token.

Expiry is checked lazily on every lookup. An expired token is removed and
reported exactly like an unknown one. sweep() only bounds memory growth;
correctness never depends on it running.

Accounts and tokens are process-local and reset on restart. Every method
below is synchronous, so under the asyncio event loop each mutation
completes without interleaving.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from authflow.models.token import Token, TokenPurpose
from authflow.services.token_generator import digest_token, utc_now

logger = logging.getLogger(__name__)


class TokenStore:
    """Digest-keyed store enforcing single use and expiry.

    Note: Safe for async/await usage (single-threaded event loop) but not
    for multi-threaded access.

    Args:
        now: Clock returning an aware UTC datetime. Injected by tests.
    """

    def __init__(self, now: Callable[[], datetime] = utc_now) -> None:
        self._now = now
        self._tokens: dict[TokenPurpose, dict[str, Token]] = {
            purpose: {} for purpose in TokenPurpose
        }

    def put(self, token: Token) -> None:
        """Store a token under its lookup digest.

        A digest collision overwrites the previous entry.

        Args:
            token: Token record from TokenGenerator.issue().
        """
        self._tokens[token.purpose][token.lookup_digest] = token

    def resolve(self, purpose: TokenPurpose, raw_value: str) -> Token | None:
        """Look up an active token without consuming it.

        Args:
            purpose: Map to search.
            raw_value: Raw token as received from the client.

        Returns:
            The Token if present and unexpired, None otherwise. An expired
            entry is removed as a side effect.
        """
        bucket = self._tokens[purpose]
        digest = digest_token(raw_value)
        token = bucket.get(digest)
        if token is None:
            return None

        if token.is_expired(self._now()):
            # Clean up expired token
            del bucket[digest]
            logger.debug("Dropped expired %s token on lookup", purpose.value)
            return None

        return token

    def consume(self, purpose: TokenPurpose, raw_value: str) -> Token | None:
        """Resolve and remove a token (one-time use).

        This is the only path callers may use before mutating account state
        on the strength of a token.

        Args:
            purpose: Map to search.
            raw_value: Raw token as received from the client.

        Returns:
            The Token if it was active, None if unknown or expired.
        """
        token = self.resolve(purpose, raw_value)
        if token is not None:
            del self._tokens[purpose][token.lookup_digest]
        return token

    def sweep(self) -> int:
        """Remove every expired token across all purposes.

        Returns:
            Number of tokens removed.
        """
        now = self._now()
        removed = 0
        for bucket in self._tokens.values():
            expired = [
                digest for digest, token in bucket.items() if token.is_expired(now)
            ]
            for digest in expired:
                del bucket[digest]
            removed += len(expired)
        return removed

    def count(self) -> dict[TokenPurpose, int]:
        """Number of stored tokens per purpose (expired ones included)."""
        return {purpose: len(bucket) for purpose, bucket in self._tokens.items()}

    def clear(self) -> None:
        """Clear all tokens (for testing)."""
        for bucket in self._tokens.values():
            bucket.clear()
