import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from authflow.core.config import settings
from authflow.core.hashing import SecretHasher
from authflow.main import create_app
from authflow.models.account import Account
from authflow.services.auth_service import AuthService
from authflow.services.token_generator import TokenGenerator
from authflow.services.token_store import TokenStore

# Test auth configuration
# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_NAME = "Ada"
TEST_EMAIL = "ada@example.com"
TEST_PASSWORD = "Secr3t!pass"  # nosec B105  # gitleaks:allow

# Low cost factor for fast tests
TEST_BCRYPT_ROUNDS = 4


class FakeClock:
    """Controllable UTC clock for token expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward by a timedelta built from kwargs."""
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock shared by the generator and store of the service fixture."""
    return FakeClock()


@pytest.fixture
def hasher() -> SecretHasher:
    """bcrypt hasher at the minimum cost factor."""
    return SecretHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def service(hasher: SecretHasher, clock: FakeClock) -> AuthService:
    """Fresh AuthService with empty stores and a controllable clock."""
    return AuthService(
        hasher=hasher,
        tokens=TokenStore(now=clock),
        generator=TokenGenerator(now=clock),
    )


@pytest_asyncio.fixture
async def registered_account(service: AuthService) -> Account:
    """Unverified account for Ada."""
    return await service.register(TEST_NAME, TEST_EMAIL, TEST_PASSWORD)


@pytest_asyncio.fixture
async def verified_account(service: AuthService, registered_account: Account) -> Account:
    """Ada's account after email verification."""
    issued = await service.issue_verification_token(
        registered_account.id, registered_account.email, 24
    )
    return await service.consume_verification_token(issued.raw_value)


@pytest.fixture
def email_dispatcher() -> AsyncMock:
    """EmailDispatcher stand-in that reports successful delivery."""
    dispatcher = AsyncMock()
    dispatcher.send.return_value = True
    return dispatcher


@pytest.fixture
def app(service: AuthService, email_dispatcher: AsyncMock) -> FastAPI:
    """Application wired to the test service and dispatcher."""
    return create_app(service=service, email_dispatcher=email_dispatcher)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the test application.

    The session cookie is issued without the Secure flag so the client's
    cookie jar sends it back over http://test.
    """
    original_secret = settings.auth_secret
    original_secure = settings.auth_cookie_secure
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.auth_cookie_secure = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_secret = original_secret
    settings.auth_cookie_secure = original_secure


@pytest.fixture
def unknown_account_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-0000000000ff")


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from authflow.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
