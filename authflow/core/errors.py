"""API error taxonomy.

Every error the service raises is an ``APIError`` tagged with one
``ErrorKind``. The kind decides the machine-readable code, the HTTP status
and whether the error is operational (expected, user-facing) or an
internal failure whose detail must not reach the client.
"""

from enum import Enum


class ErrorKind(Enum):
    """Error discriminant carrying (code, status_code, operational, default message)."""

    VALIDATION = ("VALIDATION_ERROR", 400, True, "Validation failed")
    UNAUTHORIZED = ("UNAUTHORIZED", 401, True, "Authentication required")
    AUTH = ("AUTH_FAILED", 401, True, "Invalid email or password")
    TOKEN = ("INVALID_TOKEN", 400, True, "Invalid or expired token")
    NOT_FOUND = ("NOT_FOUND", 404, True, "Resource not found")
    CONFLICT = ("CONFLICT", 409, True, "Resource already exists")
    RATE_LIMITED = ("RATE_LIMITED", 429, True, "Too many requests")
    INTERNAL = ("INTERNAL_ERROR", 500, False, "An unexpected error occurred")

    def __init__(
        self, code: str, status_code: int, operational: bool, default_message: str
    ) -> None:
        self.code = code
        self.status_code = status_code
        self.operational = operational
        self.default_message = default_message


class APIError(Exception):
    """Typed service error.

    Attributes:
        kind: Error discriminant.
        code: Machine-readable error code (e.g., "INVALID_TOKEN").
        message: Human-readable error message, safe to show the client.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
        reason: Internal-only cause (never serialized). Login failures put
            their LoginFailureReason here so tests and logs can tell the
            cases apart while clients cannot.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        *,
        details: list[dict] | None = None,
        reason: object | None = None,
    ) -> None:
        self.kind = kind
        self.code = kind.code
        self.message = message or kind.default_message
        self.status_code = kind.status_code
        self.details = details
        self.reason = reason
        super().__init__(self.message)

    @property
    def is_operational(self) -> bool:
        """Whether this is an expected, user-facing error."""
        return self.kind.operational

    def __repr__(self) -> str:
        return f"APIError(kind={self.kind.name}, message={self.message!r})"


class HashingError(Exception):
    """The password hashing subsystem failed.

    Raised by SecretHasher.hash(). Callers surface it as an
    ``ErrorKind.INTERNAL`` APIError without the underlying detail.
    """
