"""Application configuration loaded from environment variables.

Settings for the session cookie, password hashing, token lifetimes, the
periodic token sweep and email delivery. Uses pydantic-settings for
validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

# bcrypt accepts cost factors 4..31
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Public URL used to build links in verification and reset emails
    base_url: str = "http://localhost:8000"

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Session cookie
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "authflow"
    auth_cookie_name: str = "authflow.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""
    session_ttl_hours: int = 24

    # Login failures: one generic message for every cause when hardened
    auth_hardened_errors: bool = True

    # Password hashing (bcrypt work factor)
    bcrypt_rounds: int = 10

    # Token lifetimes
    verification_token_hours: int = 24
    reset_token_hours: int = 1

    # Periodic removal of expired tokens
    token_sweep_enabled: bool = True
    token_sweep_interval_seconds: int = 15 * 60

    # Email
    email_from: str = "noreply@authflow.local"
    resend_api_key: SecretStr = SecretStr("")

    # Return the emailed link in the API response when delivery fails.
    # Development only: rejected in production by check_production_security().
    expose_token_fallback: bool = False

    # Rate Limiting (Security)
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security requirements.

        Checks:
        - bcrypt rounds within the range bcrypt accepts (all environments)
        - Token lifetimes must be positive (all environments)
        - SameSite=None requires Secure flag (browser requirement)
        - CORS must not use wildcard origin (incompatible with credentials)
        - AUTH_SECRET must be set and >= 32 chars in production
        - Token fallback links must not be exposed in production
        """
        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            msg = (
                f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and "
                f"{_MAX_BCRYPT_ROUNDS}. Got: {self.bcrypt_rounds}"
            )
            raise ValueError(msg)

        if self.verification_token_hours <= 0 or self.reset_token_hours <= 0:
            msg = "VERIFICATION_TOKEN_HOURS and RESET_TOKEN_HOURS must be positive."
            raise ValueError(msg)

        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)
            if self.expose_token_fallback:
                msg = (
                    "EXPOSE_TOKEN_FALLBACK must be false in production. "
                    "Fallback links hand out live tokens in API responses."
                )
                raise ValueError(msg)

        return self


settings = Settings()
