"""Shared dependencies for API endpoints.

The auth service and email dispatcher live on ``app.state`` (created in
create_app()) and reach handlers through these dependencies, never via
module globals.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, Request

from authflow.core.auth import decode_jwt
from authflow.core.config import settings
from authflow.core.email import EmailDispatcher
from authflow.core.errors import APIError, ErrorKind
from authflow.models.account import Account
from authflow.services.auth_service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """Return the application's AuthService."""
    return request.app.state.auth_service


def get_email_dispatcher(request: Request) -> EmailDispatcher:
    """Return the application's EmailDispatcher."""
    return request.app.state.email_dispatcher


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
EmailDispatcherDep = Annotated[EmailDispatcher, Depends(get_email_dispatcher)]


def get_current_account_id(request: Request, service: AuthServiceDep) -> uuid.UUID:
    """Get current account ID from the session cookie.

    Validation steps:
    1. Read JWT from cookie
    2. Decode + verify signature, exp, aud, iss
    3. Extract sub as UUID
    4. Check the account still exists (state resets on restart)

    Security: every failure yields the same generic 401.

    Raises:
        APIError: UNAUTHORIZED for any session failure.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise APIError(ErrorKind.UNAUTHORIZED)

    try:
        payload = decode_jwt(token, settings.auth_secret.get_secret_value())
        account_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise APIError(ErrorKind.UNAUTHORIZED) from exc

    if service.get_account(account_id) is None:
        raise APIError(ErrorKind.UNAUTHORIZED)

    return account_id


CurrentAccountId = Annotated[uuid.UUID, Depends(get_current_account_id)]


def get_current_account(
    account_id: CurrentAccountId, service: AuthServiceDep
) -> Account:
    """Get the full Account for the current session.

    Raises:
        APIError: UNAUTHORIZED if the account disappeared.
    """
    account = service.get_account(account_id)
    if account is None:
        raise APIError(ErrorKind.UNAUTHORIZED)
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]
