"""Registration, email verification and session endpoints.

Endpoints:
- POST /auth/register — create account, email a verification link
- GET /auth/verify-email — redeem verification token
- POST /auth/resend-verification — new verification link
- POST /auth/login — check credentials, set session cookie
- POST /auth/logout — clear session cookie
- GET /auth/me — current account
- POST /auth/change-password — change password while signed in

Security considerations:
- login: one generic AUTH error for unknown email, unverified account and
  wrong password, with equal bcrypt work on every path
- verify-email: unknown, expired and used tokens share one error
- resend-verification: same reply whether or not the email is registered
"""

import logging

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from authflow.api.deps import (
    AuthServiceDep,
    CurrentAccount,
    CurrentAccountId,
    EmailDispatcherDep,
)
from authflow.core.auth import clear_auth_cookie, create_jwt, set_auth_cookie
from authflow.core.config import settings
from authflow.core.email import EmailDispatcher, EmailKind, build_link
from authflow.core.errors import APIError, ErrorKind
from authflow.core.rate_limiting import limiter
from authflow.core.responses import DataResponse
from authflow.models.token import IssuedToken

logger = logging.getLogger(__name__)

router = APIRouter()

_PASSWORDS_DO_NOT_MATCH = "Passwords do not match"  # nosec B105


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)


class ResendVerificationRequest(BaseModel):
    """Request body for POST /auth/resend-verification."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/change-password."""

    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)


# ===================================================================
# Email delivery
# ===================================================================


async def deliver_token_email(
    dispatcher: EmailDispatcher,
    kind: EmailKind,
    recipient: str,
    issued: IssuedToken,
) -> dict:
    """Send a token email and build the delivery part of the response.

    A failed send never revokes the token. With EXPOSE_TOKEN_FALLBACK the
    link is returned in the response instead (development only).

    Returns:
        {"email_sent": bool} plus "fallback_link" when exposed.
    """
    sent = await dispatcher.send(kind, recipient, issued.raw_value)
    payload: dict = {"email_sent": sent}
    if not sent:
        logger.warning("Token email (%s) not delivered; token remains valid", kind.value)
        if settings.expose_token_fallback:
            payload["fallback_link"] = build_link(kind, issued.raw_value)
    return payload


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit("5/hour")
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    service: AuthServiceDep,
    dispatcher: EmailDispatcherDep,
) -> DataResponse[dict]:
    """Register a new account and email a verification link.

    The account starts unverified; login is refused until the link is used.

    Rate limit: 5 per hour per IP.
    """
    if body.password != body.confirm_password:
        raise APIError(ErrorKind.VALIDATION, _PASSWORDS_DO_NOT_MATCH)

    account = await service.register(body.name, body.email, body.password)
    issued = await service.issue_verification_token(
        account.id, account.email, settings.verification_token_hours
    )
    delivery = await deliver_token_email(
        dispatcher, EmailKind.VERIFICATION, account.email, issued
    )

    return DataResponse(
        data={
            "account": account.to_public().to_response(),
            "message": "Registration successful! Please check your email to verify your account.",
            "verification_expires_at": issued.expires_at.isoformat(),
            **delivery,
        }
    )


# ===================================================================
# GET /auth/verify-email
# ===================================================================


@router.get("/verify-email")
@limiter.limit("10/minute")
async def verify_email(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    service: AuthServiceDep,
    token: str = "",
) -> DataResponse[dict]:
    """Redeem a verification token from the emailed link.

    Rate limit: 10 per minute per IP.
    """
    if not token:
        raise APIError(ErrorKind.TOKEN, "Verification token is required")

    account = await service.consume_verification_token(token)
    return DataResponse(
        data={
            "account": account.to_public().to_response(),
            "message": "Email verified successfully! You can now log in.",
        }
    )


# ===================================================================
# POST /auth/resend-verification
# ===================================================================


@router.post("/resend-verification")
@limiter.limit("3/hour")
async def resend_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResendVerificationRequest,
    service: AuthServiceDep,
    dispatcher: EmailDispatcherDep,
) -> DataResponse[dict]:
    """Issue a new verification link for an unverified account.

    Always returns the same message (prevents email enumeration).

    Rate limit: 3 per hour per IP.
    """
    issued = await service.resend_verification(
        body.email, settings.verification_token_hours
    )
    data: dict = {
        "message": "If an unverified account exists, a verification link has been sent"
    }
    if issued is not None:
        delivery = await deliver_token_email(
            dispatcher, EmailKind.VERIFICATION, issued.token.owner_email, issued
        )
        # Only the fallback link is surfaced; email_sent would leak existence
        if "fallback_link" in delivery:
            data["fallback_link"] = delivery["fallback_link"]
    return DataResponse(data=data)


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit("5/15minute")
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    service: AuthServiceDep,
) -> DataResponse[dict]:
    """Check email + password and issue the session cookie.

    Rate limit: 5 per 15 minutes per IP.
    """
    account = await service.verify_login(body.email, body.password)

    token = create_jwt(
        account_id=str(account.id),
        secret=settings.auth_secret.get_secret_value(),
    )
    set_auth_cookie(response, token)

    return DataResponse(
        data={
            "account": account.to_response(),
            "message": f"Welcome back, {account.name}!",
        }
    )


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear the session cookie.

    No session required; the cookie is cleared either way.
    """
    clear_auth_cookie(response)
    return DataResponse(data={"message": "You have been logged out successfully"})


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def get_me(account: CurrentAccount) -> DataResponse[dict]:
    """Return the signed-in account. 401 without a valid session."""
    return DataResponse(data=account.to_public().to_response())


# ===================================================================
# POST /auth/change-password
# ===================================================================


@router.post("/change-password")
@limiter.limit("5/hour")
async def change_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ChangePasswordRequest,
    account_id: CurrentAccountId,
    service: AuthServiceDep,
) -> DataResponse[dict]:
    """Change password for the signed-in account.

    Requires the current password. Other sessions are left untouched.

    Rate limit: 5 per hour per user.
    """
    if body.new_password != body.confirm_password:
        raise APIError(ErrorKind.VALIDATION, _PASSWORDS_DO_NOT_MATCH)

    await service.change_password(account_id, body.current_password, body.new_password)
    return DataResponse(data={"message": "Password updated"})
