"""slowapi limiter shared by the auth routers.

Throttles /login against credential stuffing and caps the endpoints that
send email or run bcrypt. Requests carrying a valid session are counted
per account; all others per client IP.

Routers decorate handlers directly; slowapi needs the ``request`` argument:

    @router.post("/login")
    @limiter.limit("5/15minute")
    async def login(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from authflow.core.auth import decode_jwt
from authflow.core.config import settings
from authflow.core.errors import ErrorKind

# Length of a canonical UUID string
_MAX_SUB_LENGTH = 36
_DEFAULT_RETRY_AFTER = "60"


def _rate_limit_key_func(request: Request) -> str:
    """Bucket key: "user:{sub}" for a valid session, else "unauth:{ip}"."""
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        try:
            sub = decode_jwt(token, settings.auth_secret.get_secret_value())["sub"]
        except (jwt.InvalidTokenError, KeyError):
            sub = None
        if sub and len(sub) <= _MAX_SUB_LENGTH:
            return f"user:{sub}"

    return f"unauth:{get_remote_address(request)}"


# In-memory counters; one process serves all requests
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Answer 429 RATE_LIMITED in the standard error envelope.

    Retry-After is taken from the last word of the limit description
    (e.g. "5 per 15 minute") when it is numeric, otherwise 60 seconds.
    """
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = _DEFAULT_RETRY_AFTER

    return JSONResponse(
        status_code=ErrorKind.RATE_LIMITED.status_code,
        content={
            "error": {
                "code": ErrorKind.RATE_LIMITED.code,
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
