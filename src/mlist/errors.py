"""Typed API errors shared by the core and the HTTP layer."""
import errno


class ApiError(Exception):
    """Base class for errors rendered as a ``{code, message}`` JSON body.

    Attributes:
        status_code: HTTP status returned to the client.
        code: Stable machine-readable error code.
        message: Human-readable description. Never contains filesystem paths.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        """Initialize API error.

        Args:
            message: Client-facing error description.
        """
        super().__init__(message)
        self.message = message

    @property
    def is_server_fault(self) -> bool:
        """Whether the error is a server fault rather than a client outcome."""
        return self.status_code >= 500

    def to_body(self) -> dict[str, str]:
        """Serialize for JSON responses."""
        return {"code": self.code, "message": self.message}


class BadRequestError(ApiError):
    """Malformed path, request body, or otherwise invalid input."""

    status_code = 400
    code = "BAD_REQUEST"


class UnauthorizedError(ApiError):
    """Wrong credentials were supplied."""

    status_code = 401
    code = "UNAUTHORIZED"


class AuthRequiredError(ApiError):
    """Target exists but the session does not cover its scope."""

    status_code = 401
    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Authentication required for this path.") -> None:
        super().__init__(message)


class ForbiddenError(ApiError):
    """Root escape, symlink, or malformed marker file."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class MethodNotAllowedError(ApiError):
    """Known route, unsupported method."""

    status_code = 405
    code = "METHOD_NOT_ALLOWED"


class InvalidRangeError(ApiError):
    """Unsatisfiable or malformed Range header."""

    status_code = 416
    code = "INVALID_RANGE"


class RateLimitedError(ApiError):
    status_code = 429
    code = "RATE_LIMITED"


class InternalError(ApiError):
    status_code = 500
    code = "INTERNAL_ERROR"


def from_os_error(err: OSError, context: str) -> ApiError:
    """Map an OS error to the matching API error.

    Args:
        err: Error raised by a filesystem call.
        context: Short noun describing what was accessed (e.g. "file").

    Returns:
        NotFoundError for missing entries (including a file used as a
        directory), ForbiddenError for permission problems and symlink loops
        refused by ``O_NOFOLLOW``, InternalError otherwise.
    """
    if isinstance(err, (FileNotFoundError, NotADirectoryError)):
        return NotFoundError(f"{context.capitalize()} not found.")
    if isinstance(err, PermissionError):
        return ForbiddenError(f"Permission denied while accessing {context}.")
    if err.errno == errno.ELOOP:
        return ForbiddenError("Symbolic links are not allowed.")
    return InternalError(f"Failed to access {context}.")
