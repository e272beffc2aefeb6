"""Forgotten-password endpoints.

Endpoints:
- POST /auth/forgot-password — email a reset link (1 hour)
- POST /auth/reset-password — redeem reset token, set new password

Unlike /login, forgot-password reports an unknown email as 404.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from authflow.api.deps import AuthServiceDep, EmailDispatcherDep
from authflow.api.v1.auth import deliver_token_email
from authflow.core.config import settings
from authflow.core.email import EmailKind
from authflow.core.errors import APIError, ErrorKind
from authflow.core.rate_limiting import limiter
from authflow.core.responses import DataResponse

router = APIRouter()


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(max_length=256)
    password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1, max_length=128)


@router.post("/forgot-password")
@limiter.limit("3/hour")
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ForgotPasswordRequest,
    service: AuthServiceDep,
    dispatcher: EmailDispatcherDep,
) -> DataResponse[dict]:
    """Issue a password-reset token and email it.

    Rate limit: 3 per hour per IP.
    """
    issued = await service.issue_reset_token(body.email, settings.reset_token_hours)
    delivery = await deliver_token_email(
        dispatcher, EmailKind.PASSWORD_RESET, issued.token.owner_email, issued
    )
    return DataResponse(
        data={
            "message": "Password reset instructions have been sent to your email",
            "reset_expires_at": issued.expires_at.isoformat(),
            **delivery,
        }
    )


@router.post("/reset-password")
@limiter.limit("5/hour")
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetPasswordRequest,
    service: AuthServiceDep,
) -> DataResponse[dict]:
    """Set a new password using a reset token.

    The token is single-use; a password that fails validation leaves it
    usable for another attempt.

    Rate limit: 5 per hour per IP.
    """
    if not body.token:
        raise APIError(ErrorKind.TOKEN, "Reset token is required")
    if body.password != body.confirm_password:
        raise APIError(ErrorKind.VALIDATION, "Passwords do not match")

    await service.consume_reset_token(body.token, body.password)
    return DataResponse(
        data={
            "message": "Password has been reset successfully. You can now log in with your new password."
        }
    )
