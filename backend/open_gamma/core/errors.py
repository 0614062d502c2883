"""API error classes.

Each APIError maps to one HTTP status and one machine-readable code in the
standard error envelope. Messages are deliberately generic where detail
would help an attacker (auth-state failures) or leak upstream internals
(provider failures).
"""


class ConfigurationError(Exception):
    """Required configuration is missing or malformed.

    Raised at start-up only; the process refuses to serve requests.
    """


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Malformed request body or auth-state token (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Missing or invalid session (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Also used when the resource exists but belongs to another user, so
    ownership is never revealed.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class RateLimitedError(APIError):
    """Per-user request budget exhausted (429).

    Carries no retry-after detail.
    """

    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(
            code="RATE_LIMITED",
            message=message,
            status_code=429,
        )


class UpstreamError(APIError):
    """An external provider failed (500).

    The provider's own error text is logged server-side and never placed
    in the message returned to the client.
    """

    def __init__(self, message: str = "Upstream service failed") -> None:
        super().__init__(
            code="UPSTREAM_ERROR",
            message=message,
            status_code=500,
        )


class InternalError(APIError):
    """Unexpected server error (500). Never expose stack traces to clients."""

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
