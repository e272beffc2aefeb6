"""Tests for Settings validation."""

import pytest
from pydantic import SecretStr, ValidationError

from authflow.core.config import Settings

_SECRET = "x" * 32


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    def test_development_defaults_are_valid(self):
        s = _settings()
        assert s.environment == "development"
        assert s.bcrypt_rounds == 10
        assert s.verification_token_hours == 24
        assert s.reset_token_hours == 1
        assert s.auth_hardened_errors is True
        assert s.expose_token_fallback is False


class TestValidation:
    @pytest.mark.parametrize("rounds", [3, 32])
    def test_bcrypt_rounds_out_of_range(self, rounds):
        with pytest.raises(ValidationError, match="BCRYPT_ROUNDS"):
            _settings(bcrypt_rounds=rounds)

    def test_non_positive_token_hours(self):
        with pytest.raises(ValidationError, match="must be positive"):
            _settings(reset_token_hours=0)

    def test_samesite_none_requires_secure(self):
        with pytest.raises(ValidationError, match="AUTH_COOKIE_SECURE"):
            _settings(auth_cookie_samesite="none", auth_cookie_secure=False)

    def test_wildcard_cors_rejected(self):
        with pytest.raises(ValidationError, match="wildcard"):
            _settings(allowed_origins=["*"])


class TestProduction:
    def test_secret_required(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET must be set"):
            _settings(environment="production")

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32"):
            _settings(environment="production", auth_secret=SecretStr("short"))

    def test_token_fallback_forbidden(self):
        with pytest.raises(ValidationError, match="EXPOSE_TOKEN_FALLBACK"):
            _settings(
                environment="production",
                auth_secret=SecretStr(_SECRET),
                expose_token_fallback=True,
            )

    def test_valid_production_settings(self):
        s = _settings(environment="production", auth_secret=SecretStr(_SECRET))
        assert s.auth_secret.get_secret_value() == _SECRET

    def test_fallback_allowed_in_development(self):
        assert _settings(expose_token_fallback=True).expose_token_fallback is True
