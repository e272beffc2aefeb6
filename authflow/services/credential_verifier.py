"""Credential verification for the login path.

Checks run in a fixed order (account lookup, verified gate, password) but
the bcrypt work is identical for all three failure causes: a missing
account burns a dummy comparison and an unverified account still has its
password checked before the gate result is reported. Every failure raises
the same ``ErrorKind.AUTH`` error; only ``exc.reason`` (never serialized)
tells them apart.
"""

import logging
from enum import Enum

from authflow.core.errors import APIError, ErrorKind
from authflow.core.hashing import SecretHasher
from authflow.models.account import Account
from authflow.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)

_UNVERIFIED_MSG = "Please verify your email before signing in"


class LoginFailureReason(str, Enum):
    """Internal cause of a failed login."""

    NO_SUCH_ACCOUNT = "no_such_account"
    ACCOUNT_NOT_VERIFIED = "account_not_verified"
    BAD_CREDENTIALS = "bad_credentials"
    HASHING_FAILED = "hashing_failed"


class CredentialVerifier:
    """Resolves an account from email + password.

    Args:
        accounts: Account registry to search.
        hasher: Password hasher used for the comparison.
        hardened: When True, every failure carries the same public message.
            When False, an unverified account is told to verify its email.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        hasher: SecretHasher,
        *,
        hardened: bool = True,
    ) -> None:
        self._accounts = accounts
        self._hasher = hasher
        self._hardened = hardened

    async def verify(self, email: str, password: str) -> Account:
        """Authenticate an email/password pair.

        Args:
            email: Email as typed by the user (normalized here).
            password: Plaintext password.

        Returns:
            The matching, verified Account.

        Raises:
            APIError: AUTH for every failure cause.
        """
        account = self._accounts.get_by_email(email)
        if account is None:
            # Security: same bcrypt cost as a real comparison
            await self._hasher.burn(password)
            raise self._failure(LoginFailureReason.NO_SUCH_ACCOUNT)

        try:
            matches = await self._hasher.verify(password, account.secret_hash)
        except Exception as exc:
            logger.error(
                "Password comparison failed for account %s: %s",
                account.id,
                type(exc).__name__,
            )
            raise self._failure(LoginFailureReason.HASHING_FAILED) from exc

        if not account.verified:
            raise self._failure(LoginFailureReason.ACCOUNT_NOT_VERIFIED)

        if not matches:
            raise self._failure(LoginFailureReason.BAD_CREDENTIALS)

        return account

    def _failure(self, reason: LoginFailureReason) -> APIError:
        message = None
        if reason is LoginFailureReason.ACCOUNT_NOT_VERIFIED and not self._hardened:
            message = _UNVERIFIED_MSG
        logger.info("Login rejected: %s", reason.value)
        return APIError(ErrorKind.AUTH, message, reason=reason)
