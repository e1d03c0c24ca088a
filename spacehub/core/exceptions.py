"""Custom exceptions for the SpaceHub core.

These exceptions provide structured error handling that:
- Separates internal details from user-facing messages
- Lets the API boundary pick a status code per error kind
- Keeps NotFound and internal failures distinct
"""


class SpaceHubError(Exception):
    """Base exception for all domain errors."""

    code = "E_INTERNAL"
    default_user_message = "An error occurred while processing your request."
    expose_error = False
    """Whether the internal message may be shown to the caller."""

    def __init__(self, message: str, user_message: str | None = None):
        """
        Initialize error.

        Args:
            message: Internal error message for logging/debugging
            user_message: Safe message to show to users (defaults per class)
        """
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ValidationError(SpaceHubError):
    """Bad input shape or constraint violation."""

    code = "E_VALIDATION"
    default_user_message = "The request is invalid."
    expose_error = True


class ConflictError(ValidationError):
    """Duplicate unique key or already-existing relation."""

    code = "E_CONFLICT"
    default_user_message = "The resource already exists."


class NotFoundError(SpaceHubError):
    """Identifier or relation absent."""

    code = "E_NOT_FOUND"
    default_user_message = "Resource not found."
    expose_error = True


class UnauthorizedError(SpaceHubError):
    """Missing or invalid credential."""

    code = "E_UNAUTHENTICATED"
    default_user_message = "Authentication required."


class ForbiddenError(SpaceHubError):
    """Role insufficient for the requested operation."""

    code = "E_FORBIDDEN"
    default_user_message = "You do not have permission to perform this action."
    expose_error = True


class LimitExceededError(ForbiddenError):
    """Plan or rate limit reached."""

    code = "E_LIMIT_EXCEEDED"
    default_user_message = "Usage limit reached."


class UpstreamError(SpaceHubError):
    """External provider or service failure."""

    code = "E_UPSTREAM"
    default_user_message = "An external service is unavailable. Please try again."


class InternalError(SpaceHubError):
    """Unexpected store or signing failure."""

    code = "E_INTERNAL"
