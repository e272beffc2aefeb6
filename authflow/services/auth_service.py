"""Authentication service - registration, verification, login and reset.

Composes the account registry, token store, token generator, password
hasher and credential verifier into the one object the HTTP layer talks
to. One instance per application, created in create_app() and handed to
handlers through a FastAPI dependency.

Ordering rule for every flow that hashes: the slow bcrypt await happens
either before the registry mutation or after the token has been consumed,
never between a check and the write it guards.
"""

import logging
import uuid

from authflow.core.auth import validate_name, validate_password_strength
from authflow.core.errors import APIError, ErrorKind, HashingError
from authflow.core.hashing import SecretHasher
from authflow.models.account import Account, PublicAccount
from authflow.models.token import IssuedToken, TokenPurpose
from authflow.repositories.account_repository import AccountRepository
from authflow.services.credential_verifier import CredentialVerifier
from authflow.services.token_generator import TokenGenerator
from authflow.services.token_store import TokenStore

logger = logging.getLogger(__name__)

# Default token lifetimes in hours
VERIFICATION_TOKEN_HOURS = 24
RESET_TOKEN_HOURS = 1

_INVALID_TOKEN_MSG = "Invalid or expired token"


class AuthService:
    """Token lifecycle and credential engine.

    Args:
        hasher: Password hasher. Defaults to bcrypt at the default cost.
        accounts: Account registry. Defaults to a fresh in-memory one.
        tokens: Token store. Defaults to a fresh in-memory one.
        generator: Token generator.
        hardened_errors: Passed to CredentialVerifier.
    """

    def __init__(
        self,
        *,
        hasher: SecretHasher | None = None,
        accounts: AccountRepository | None = None,
        tokens: TokenStore | None = None,
        generator: TokenGenerator | None = None,
        hardened_errors: bool = True,
    ) -> None:
        self.hasher = hasher or SecretHasher()
        self.accounts = accounts or AccountRepository()
        self.tokens = tokens or TokenStore()
        self.generator = generator or TokenGenerator()
        self.verifier = CredentialVerifier(
            self.accounts, self.hasher, hardened=hardened_errors
        )

    # ---------------------------------------------------------------
    # Registration + email verification
    # ---------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> Account:
        """Create an unverified account.

        Args:
            name: Display name.
            email: Email address (normalized before storage).
            password: Plaintext password.

        Returns:
            The new Account (verified=False).

        Raises:
            APIError: VALIDATION for a bad name/password, CONFLICT for a
                registered email, INTERNAL if hashing fails.
        """
        name = validate_name(name)
        validate_password_strength(password)

        # create() re-checks after the await
        if self.accounts.get_by_email(email) is not None:
            raise APIError(ErrorKind.CONFLICT, "Email already registered")

        secret_hash = await self._hash(password)
        account = self.accounts.create(name=name, email=email, secret_hash=secret_hash)
        logger.info("Registered account %s", account.id)
        return account

    async def issue_verification_token(
        self,
        account_id: uuid.UUID,
        email: str,
        hours: float = VERIFICATION_TOKEN_HOURS,
    ) -> IssuedToken:
        """Issue and store an email verification token.

        Args:
            account_id: Owner account.
            email: Owner email (display only).
            hours: Token lifetime.

        Returns:
            IssuedToken; its raw_value is the only copy of the token.

        Raises:
            APIError: NOT_FOUND if the account does not exist.
        """
        if self.accounts.get_by_id(account_id) is None:
            raise APIError(ErrorKind.NOT_FOUND, "Account not found")
        return self._issue(TokenPurpose.VERIFICATION, account_id, email, hours)

    async def consume_verification_token(self, raw_value: str) -> Account:
        """Redeem a verification token and mark its owner verified.

        Args:
            raw_value: Token from the emailed link.

        Returns:
            The now-verified Account.

        Raises:
            APIError: TOKEN if the token is unknown, expired or used.
        """
        token = self.tokens.consume(TokenPurpose.VERIFICATION, raw_value)
        if token is None:
            raise APIError(ErrorKind.TOKEN, _INVALID_TOKEN_MSG)

        account = self.accounts.mark_verified(token.owner_account_id)
        if account is None:
            raise APIError(ErrorKind.TOKEN, _INVALID_TOKEN_MSG)

        logger.info("Verified account %s", account.id)
        return account

    async def resend_verification(
        self, email: str, hours: float = VERIFICATION_TOKEN_HOURS
    ) -> IssuedToken | None:
        """Issue a fresh verification token for an unverified account.

        Earlier tokens stay valid until they expire or are used.

        Returns:
            IssuedToken, or None if no unverified account has this email.
        """
        account = self.accounts.get_by_email(email)
        if account is None or account.verified:
            return None
        return self._issue(TokenPurpose.VERIFICATION, account.id, account.email, hours)

    # ---------------------------------------------------------------
    # Login
    # ---------------------------------------------------------------

    async def verify_login(self, email: str, password: str) -> PublicAccount:
        """Check credentials for a session login.

        Returns:
            The account without its password hash.

        Raises:
            APIError: AUTH for an unknown email, an unverified account or a
                wrong password, with the cause on ``exc.reason``.
        """
        account = await self.verifier.verify(email, password)
        return account.to_public()

    async def change_password(
        self,
        account_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> Account:
        """Change the password of a signed-in account.

        Raises:
            APIError: UNAUTHORIZED if the account is gone, AUTH if the
                current password is wrong, VALIDATION for a weak password.
        """
        account = self.accounts.get_by_id(account_id)
        if account is None:
            raise APIError(ErrorKind.UNAUTHORIZED)

        if not await self.hasher.verify(current_password, account.secret_hash):
            raise APIError(ErrorKind.AUTH, "Current password incorrect")

        validate_password_strength(new_password)
        secret_hash = await self._hash(new_password)
        updated = self.accounts.update_secret(account_id, secret_hash)
        if updated is None:
            raise APIError(ErrorKind.UNAUTHORIZED)

        logger.info("Password changed for account %s", account_id)
        return updated

    # ---------------------------------------------------------------
    # Forgotten password
    # ---------------------------------------------------------------

    async def issue_reset_token(
        self, email: str, hours: float = RESET_TOKEN_HOURS
    ) -> IssuedToken:
        """Issue and store a password-reset token.

        The caller decides whether to reveal that no account matched.

        Raises:
            APIError: NOT_FOUND if no account has this email.
        """
        account = self.accounts.get_by_email(email)
        if account is None:
            raise APIError(ErrorKind.NOT_FOUND, "No account with that email address")
        return self._issue(TokenPurpose.RESET, account.id, account.email, hours)

    async def consume_reset_token(self, raw_value: str, new_password: str) -> Account:
        """Redeem a reset token and replace the owner's password.

        The new password is validated before the token is touched, so a
        rejected password leaves the token usable.

        Raises:
            APIError: VALIDATION for a weak password, TOKEN if the token is
                unknown, expired or used, INTERNAL if hashing fails.
        """
        validate_password_strength(new_password)

        token = self.tokens.consume(TokenPurpose.RESET, raw_value)
        if token is None:
            raise APIError(ErrorKind.TOKEN, _INVALID_TOKEN_MSG)

        secret_hash = await self._hash(new_password)
        account = self.accounts.update_secret(token.owner_account_id, secret_hash)
        if account is None:
            raise APIError(ErrorKind.TOKEN, _INVALID_TOKEN_MSG)

        logger.info("Password reset for account %s", account.id)
        return account

    # ---------------------------------------------------------------
    # Housekeeping
    # ---------------------------------------------------------------

    def get_account(self, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by id."""
        return self.accounts.get_by_id(account_id)

    def sweep_expired_tokens(self) -> int:
        """Remove expired tokens of every purpose. Returns the count."""
        return self.tokens.sweep()

    # ---------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------

    def _issue(
        self,
        purpose: TokenPurpose,
        account_id: uuid.UUID,
        email: str,
        hours: float,
    ) -> IssuedToken:
        issued = self.generator.issue(purpose, account_id, email, hours)
        self.tokens.put(issued.token)
        logger.info("Issued %s token for account %s", purpose.value, account_id)
        return issued

    async def _hash(self, password: str) -> str:
        try:
            return await self.hasher.hash(password)
        except HashingError as exc:
            raise APIError(ErrorKind.INTERNAL) from exc
