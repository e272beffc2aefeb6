"""Email sending via Resend API.

Plain-text verification and password-reset emails. Delivery failure is
reported to the caller as ``False`` and never raised: the token stays
valid whether or not the email went out.
"""

import logging
from enum import Enum
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx

from authflow.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class EmailKind(str, Enum):
    """Which email to send."""

    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"


_SUBJECTS = {
    EmailKind.VERIFICATION: "Verify your email address",
    EmailKind.PASSWORD_RESET: "Reset your password",
}

_BODIES = {
    EmailKind.VERIFICATION: (
        "Thanks for registering! Confirm your email address by opening this link:"
        "\n\n{url}\n\n"
        "This link expires in {hours} hours. "
        "If you didn't create an account, you can safely ignore this email."
    ),
    EmailKind.PASSWORD_RESET: (
        "We received a request to reset your password. Choose a new one here:"
        "\n\n{url}\n\n"
        "This link expires in {hours} hour(s). "
        "If you didn't request this, you can safely ignore this email."
    ),
}


def build_link(kind: EmailKind, token: str) -> str:
    """Build the URL embedded in an email (and in fallback responses).

    Verification links hit the API directly. Reset links open the reset
    form, which then POSTs the token with the new password.

    Args:
        kind: Email kind.
        token: Plain (unhashed) token.

    Returns:
        Absolute URL.
    """
    params = urlencode({"token": token}, quote_via=quote)
    if kind is EmailKind.VERIFICATION:
        return f"{settings.base_url}/api/v1/auth/verify-email?{params}"
    return f"{settings.base_url}/reset-password?{params}"


class EmailDispatcher(Protocol):
    """Delivery contract consumed by the auth endpoints."""

    async def send(self, kind: EmailKind, recipient: str, raw_token: str) -> bool:
        """Send an email carrying a token link. True on success."""
        ...


class ResendEmailDispatcher:
    """EmailDispatcher backed by the Resend HTTP API."""

    async def send(self, kind: EmailKind, recipient: str, raw_token: str) -> bool:
        """Send a verification or reset email.

        Args:
            kind: Email kind.
            recipient: Destination address.
            raw_token: Plain (unhashed) token to embed in the link.

        Returns:
            True if Resend accepted the message, False otherwise.
        """
        api_key = settings.resend_api_key.get_secret_value()
        if not api_key:
            logger.warning("Email delivery not configured (RESEND_API_KEY unset)")
            return False

        hours = (
            settings.verification_token_hours
            if kind is EmailKind.VERIFICATION
            else settings.reset_token_hours
        )
        text = _BODIES[kind].format(url=build_link(kind, raw_token), hours=hours)

        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json={
                        "from": settings.email_from,
                        "to": recipient,
                        "subject": _SUBJECTS[kind],
                        "text": text,
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to send %s email", kind.value, exc_info=True)
            return False
        return True
