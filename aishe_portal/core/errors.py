# aishe_portal/core/errors.py

from fastapi import status


class PortalError(Exception):
    """
    Base class for errors that map straight onto an HTTP envelope.
    Services raise these; the handlers in main.py render them.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidOrExpiredOtpError(ValidationError):
    default_message = "Invalid or expired OTP"


class UnauthorizedError(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid username or password"


class ForbiddenError(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No account found"


class ConflictError(PortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Username or Email already exists"


class ServiceUnavailableError(PortalError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable. Please try again later."
