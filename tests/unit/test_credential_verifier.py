"""Tests for CredentialVerifier — uniform login failures.

Every failure cause must surface as the same AUTH error (code, status,
message); only the internal ``reason`` differs.
"""

from unittest.mock import AsyncMock, patch

import pytest

from authflow.core.errors import APIError, ErrorKind
from authflow.models.account import Account
from authflow.services.auth_service import AuthService
from authflow.services.credential_verifier import (
    CredentialVerifier,
    LoginFailureReason,
)
from tests.conftest import TEST_EMAIL, TEST_PASSWORD


async def _failure(verifier: CredentialVerifier, email: str, password: str) -> APIError:
    with pytest.raises(APIError) as exc_info:
        await verifier.verify(email, password)
    return exc_info.value


class TestSuccess:
    async def test_verified_account_with_right_password(
        self, service: AuthService, verified_account: Account
    ):
        account = await service.verifier.verify(TEST_EMAIL, TEST_PASSWORD)
        assert account is verified_account

    async def test_email_lookup_is_case_insensitive(
        self, service: AuthService, verified_account: Account
    ):
        account = await service.verifier.verify("ADA@Example.com", TEST_PASSWORD)
        assert account.id == verified_account.id


class TestFailureReasons:
    async def test_unknown_email(self, service: AuthService):
        exc = await _failure(service.verifier, "ghost@example.com", TEST_PASSWORD)
        assert exc.reason is LoginFailureReason.NO_SUCH_ACCOUNT

    async def test_unverified_account(
        self, service: AuthService, registered_account: Account
    ):
        exc = await _failure(service.verifier, TEST_EMAIL, TEST_PASSWORD)
        assert exc.reason is LoginFailureReason.ACCOUNT_NOT_VERIFIED

    async def test_wrong_password(self, service: AuthService, verified_account: Account):
        exc = await _failure(service.verifier, TEST_EMAIL, "Wr0ng!pass")
        assert exc.reason is LoginFailureReason.BAD_CREDENTIALS

    async def test_unverified_with_wrong_password_reports_gate(
        self, service: AuthService, registered_account: Account
    ):
        exc = await _failure(service.verifier, TEST_EMAIL, "Wr0ng!pass")
        assert exc.reason is LoginFailureReason.ACCOUNT_NOT_VERIFIED

    async def test_all_failures_share_public_shape(
        self, service: AuthService, verified_account: Account
    ):
        unknown = await _failure(service.verifier, "ghost@example.com", TEST_PASSWORD)
        wrong = await _failure(service.verifier, TEST_EMAIL, "Wr0ng!pass")
        service.accounts.create(
            name="Bob", email="bob@example.com", secret_hash=verified_account.secret_hash
        )
        unverified = await _failure(service.verifier, "bob@example.com", TEST_PASSWORD)

        for exc in (unknown, wrong, unverified):
            assert exc.kind is ErrorKind.AUTH
            assert exc.code == "AUTH_FAILED"
            assert exc.status_code == 401
            assert exc.message == "Invalid email or password"


class TestTimingEqualization:
    async def test_unknown_email_burns_dummy_hash(self, service: AuthService):
        with patch.object(service.hasher, "burn", new_callable=AsyncMock) as burn:
            await _failure(service.verifier, "ghost@example.com", TEST_PASSWORD)
        burn.assert_awaited_once_with(TEST_PASSWORD)

    async def test_unverified_account_still_compares_password(
        self, service: AuthService, registered_account: Account
    ):
        with patch.object(
            service.hasher, "verify", new_callable=AsyncMock, return_value=True
        ) as verify:
            await _failure(service.verifier, TEST_EMAIL, TEST_PASSWORD)
        verify.assert_awaited_once_with(TEST_PASSWORD, registered_account.secret_hash)


class TestHashingFailure:
    async def test_comparison_error_becomes_auth_failure(
        self, service: AuthService, verified_account: Account
    ):
        with patch.object(
            service.hasher,
            "verify",
            new_callable=AsyncMock,
            side_effect=RuntimeError("thread pool gone"),
        ):
            exc = await _failure(service.verifier, TEST_EMAIL, TEST_PASSWORD)

        assert exc.kind is ErrorKind.AUTH
        assert exc.reason is LoginFailureReason.HASHING_FAILED
        assert exc.message == "Invalid email or password"
        assert isinstance(exc.__cause__, RuntimeError)


class TestNonHardenedMessages:
    async def test_unverified_gets_specific_message(
        self, service: AuthService, registered_account: Account
    ):
        verifier = CredentialVerifier(service.accounts, service.hasher, hardened=False)
        exc = await _failure(verifier, TEST_EMAIL, TEST_PASSWORD)
        assert exc.kind is ErrorKind.AUTH
        assert exc.message == "Please verify your email before signing in"

    async def test_other_failures_stay_generic(
        self, service: AuthService, verified_account: Account
    ):
        verifier = CredentialVerifier(service.accounts, service.hasher, hardened=False)
        exc = await _failure(verifier, TEST_EMAIL, "Wr0ng!pass")
        assert exc.message == "Invalid email or password"
