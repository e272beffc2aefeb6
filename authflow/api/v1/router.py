"""API v1 router aggregator.

All v1 endpoint routers are included here under /api/v1.
"""

from fastapi import APIRouter

from authflow.api.v1 import auth, password

router = APIRouter()

_AUTH_PREFIX = "/auth"

router.include_router(auth.router, prefix=_AUTH_PREFIX, tags=["auth"])
router.include_router(password.router, prefix=_AUTH_PREFIX, tags=["auth"])
