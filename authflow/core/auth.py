"""Session and input-validation helpers shared by the auth endpoints.

Pipeline:
- create_jwt / set_auth_cookie / clear_auth_cookie: session establishment
- decode_jwt: session lookup for authenticated endpoints
- validate_name / validate_password_strength: fixed format rules
"""

import re
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Response

from authflow.core.config import settings
from authflow.core.errors import APIError, ErrorKind

_AUDIENCE = "authflow"
_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72

_NAME_PATTERN = re.compile(r"^[A-Za-z ]+$")
_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def _session_ttl() -> timedelta:
    return timedelta(hours=settings.session_ttl_hours)


def create_jwt(
    *,
    account_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session JWT with standard claims.

    Args:
        account_id: Account UUID string for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to SESSION_TTL_HOURS.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": account_id,
        "aud": _AUDIENCE,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _session_ttl()),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_jwt(token: str, secret: str) -> dict:
    """Decode and validate a session JWT.

    Raises:
        jwt.InvalidTokenError: On bad signature, expiry, audience or issuer.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[_ALGORITHM],
        audience=_AUDIENCE,
        issuer=settings.auth_issuer,
    )


def set_auth_cookie(response: Response, token: str) -> None:
    """Set httpOnly session cookie on response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: JWT token string.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=int(_session_ttl().total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Delete the session cookie.

    Attributes must match set_auth_cookie() for browsers to delete it.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain or None,
    )


def validate_name(name: str) -> str:
    """Validate a display name and return it trimmed.

    Rules: 2-50 characters, letters and spaces only.

    Raises:
        APIError: VALIDATION if the name breaks a rule.
    """
    trimmed = name.strip()
    if not 2 <= len(trimmed) <= 50:
        raise APIError(ErrorKind.VALIDATION, "Name must be between 2 and 50 characters")
    if not _NAME_PATTERN.match(trimmed):
        raise APIError(ErrorKind.VALIDATION, "Name can only contain letters and spaces")
    return trimmed


def validate_password_strength(password: str) -> None:
    """Validate password meets strength requirements.

    Rules: at least 8 characters and at most 72 bytes, with an upper-case
    letter, a lower-case letter, a number and a special character. All
    violations are reported together.

    Args:
        password: Plain-text password to validate.

    Raises:
        APIError: VALIDATION listing every broken rule.
    """
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if len(password.encode()) > _BCRYPT_MAX_BYTES:
        errors.append(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_CHARS.search(password):
        errors.append("Password must contain at least one special character")

    if errors:
        raise APIError(
            ErrorKind.VALIDATION,
            ", ".join(errors),
            details=[{"field": "password", "msg": e} for e in errors],
        )
