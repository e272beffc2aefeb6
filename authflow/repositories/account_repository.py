"""In-memory repository for Account records.

Two indexes over the same records: by id and by normalized email. Every
mutation is a single synchronous step (check + write with no await in
between), so under the asyncio event loop no other request can observe a
half-applied change.

Password hashing never happens here. Callers hash first (awaiting the
worker thread), then hand the finished hash to create() / update_secret().
"""

import uuid

from authflow.core.errors import APIError, ErrorKind
from authflow.models.account import Account, normalize_email


class AccountRepository:
    """Process-wide account registry.

    Owned by AuthService; never a module global, so it can be swapped for a
    persistent implementation without touching handlers.
    """

    def __init__(self) -> None:
        self._by_id: dict[uuid.UUID, Account] = {}
        self._id_by_email: dict[str, uuid.UUID] = {}

    def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by primary key.

        Args:
            account_id: UUID primary key.

        Returns:
            Account if found, None otherwise.
        """
        return self._by_id.get(account_id)

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email address (case-insensitive).

        Args:
            email: Email address to look up.

        Returns:
            Account if found, None otherwise.
        """
        account_id = self._id_by_email.get(normalize_email(email))
        if account_id is None:
            return None
        return self._by_id.get(account_id)

    def create(self, *, name: str, email: str, secret_hash: str) -> Account:
        """Create a new, unverified account.

        Email is normalized before the uniqueness check and storage.

        Args:
            name: Display name.
            email: Email address.
            secret_hash: bcrypt hash of the password.

        Returns:
            Created Account.

        Raises:
            APIError: CONFLICT if the email is already registered.
        """
        normalized = normalize_email(email)
        if normalized in self._id_by_email:
            raise APIError(ErrorKind.CONFLICT, "Email already registered")

        account = Account(name=name.strip(), email=normalized, secret_hash=secret_hash)
        self._by_id[account.id] = account
        self._id_by_email[normalized] = account.id
        return account

    def mark_verified(self, account_id: uuid.UUID) -> Account | None:
        """Flag an account's email as verified (idempotent).

        Args:
            account_id: UUID of the account.

        Returns:
            Updated Account, or None if it does not exist.
        """
        account = self._by_id.get(account_id)
        if account is None:
            return None
        account.verified = True
        return account

    def update_secret(self, account_id: uuid.UUID, secret_hash: str) -> Account | None:
        """Replace an account's password hash.

        Args:
            account_id: UUID of the account.
            secret_hash: New bcrypt hash.

        Returns:
            Updated Account, or None if it does not exist.
        """
        account = self._by_id.get(account_id)
        if account is None:
            return None
        account.secret_hash = secret_hash
        return account

    def count(self) -> int:
        """Number of registered accounts."""
        return len(self._by_id)

    def clear(self) -> None:
        """Remove all accounts (for testing)."""
        self._by_id.clear()
        self._id_by_email.clear()
