"""Tests for session JWT, cookie and input-validation helpers."""

from datetime import timedelta

import jwt
import pytest
from fastapi import Response

from authflow.core.auth import (
    clear_auth_cookie,
    create_jwt,
    decode_jwt,
    set_auth_cookie,
    validate_name,
    validate_password_strength,
)
from authflow.core.config import settings
from authflow.core.errors import APIError, ErrorKind
from tests.conftest import TEST_AUTH_SECRET, TEST_PASSWORD

_ACCOUNT_ID = "10000000-0000-0000-0000-000000000001"


class TestJwt:
    def test_round_trip(self):
        token = create_jwt(account_id=_ACCOUNT_ID, secret=TEST_AUTH_SECRET)
        payload = decode_jwt(token, TEST_AUTH_SECRET)
        assert payload["sub"] == _ACCOUNT_ID
        assert payload["aud"] == "authflow"
        assert payload["iss"] == settings.auth_issuer

    def test_wrong_secret_rejected(self):
        token = create_jwt(account_id=_ACCOUNT_ID, secret=TEST_AUTH_SECRET)
        with pytest.raises(jwt.InvalidSignatureError):
            decode_jwt(token, "another-secret-that-is-at-least-32-chars")

    def test_expired_rejected(self):
        token = create_jwt(
            account_id=_ACCOUNT_ID,
            secret=TEST_AUTH_SECRET,
            expires_delta=timedelta(seconds=-1),
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_jwt(token, TEST_AUTH_SECRET)

    def test_foreign_audience_rejected(self):
        token = jwt.encode(
            {"sub": _ACCOUNT_ID, "aud": "other", "iss": settings.auth_issuer},
            TEST_AUTH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidAudienceError):
            decode_jwt(token, TEST_AUTH_SECRET)


class TestCookies:
    def test_set_cookie_is_http_only(self):
        response = Response()
        set_auth_cookie(response, "jwt-value")
        header = response.headers["set-cookie"]
        assert header.startswith(f"{settings.auth_cookie_name}=jwt-value")
        assert "HttpOnly" in header
        assert "Path=/" in header
        assert f"samesite={settings.auth_cookie_samesite}" in header.lower()

    def test_clear_cookie_expires_it(self):
        response = Response()
        clear_auth_cookie(response)
        header = response.headers["set-cookie"]
        assert header.startswith(f'{settings.auth_cookie_name}=""')
        assert "Max-Age=0" in header


class TestValidateName:
    def test_returns_trimmed(self):
        assert validate_name("  Ada Lovelace  ") == "Ada Lovelace"

    @pytest.mark.parametrize("name", ["Al", "x" * 50])
    def test_length_bounds_accepted(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["A", "x" * 51, " A "])
    def test_length_bounds_rejected(self, name):
        with pytest.raises(APIError) as exc_info:
            validate_name(name)
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert "between 2 and 50" in exc_info.value.message

    @pytest.mark.parametrize("name", ["Ada1", "Ada-Lovelace", "O'Brien", "Zoë"])
    def test_letters_and_spaces_only(self, name):
        with pytest.raises(APIError) as exc_info:
            validate_name(name)
        assert "letters and spaces" in exc_info.value.message


class TestValidatePasswordStrength:
    def test_strong_password_passes(self):
        validate_password_strength(TEST_PASSWORD)

    @pytest.mark.parametrize(
        ("password", "fragment"),
        [
            ("Sh0rt!a", "at least 8 characters"),
            ("nouppercase1!", "uppercase letter"),
            ("NOLOWERCASE1!", "lowercase letter"),
            ("NoNumbers!!", "one number"),
            ("NoSpecial123", "special character"),
        ],
    )
    def test_each_rule(self, password, fragment):
        with pytest.raises(APIError) as exc_info:
            validate_password_strength(password)
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert fragment in exc_info.value.message

    def test_all_violations_reported(self):
        with pytest.raises(APIError) as exc_info:
            validate_password_strength("")
        assert len(exc_info.value.details) == 5
        assert all(d["field"] == "password" for d in exc_info.value.details)

    def test_over_72_bytes_rejected(self):
        password = "Aa1!" + "é" * 35  # 4 + 70 bytes
        with pytest.raises(APIError) as exc_info:
            validate_password_strength(password)
        assert "at most 72 bytes" in exc_info.value.message

    def test_exactly_72_bytes_accepted(self):
        validate_password_strength("Aa1!" + "a" * 68)
