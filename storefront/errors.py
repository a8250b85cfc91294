"""Service errors.

Raised by the service layer when a request cannot be completed. The HTTP
layer renders them as ``{"error": message}`` with the carried status.
"""
from typing import Any, Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response"""
    status = 500

    def __init__(self, message: str, status: Optional[int] = None,
                 details: Any = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details


class ValidationError(ServiceError):
    """Malformed or missing input"""
    status = 400


class AuthenticationError(ServiceError):
    status = 401


class AuthorizationError(ServiceError):
    status = 403


class NotFoundError(ServiceError):
    """Referenced order, order item or product does not exist"""
    status = 404


class ConflictError(ServiceError):
    """Request is incompatible with the current order state.

    Reported as a client error (400) rather than 409 so existing clients
    keep working.
    """
    status = 400


class RateLimitError(ServiceError):
    status = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamServiceError(ServiceError):
    """Payment gateway unreachable, misconfigured or rejecting the request"""
    status = 500

    def __init__(self, message: str, status: Optional[int] = None,
                 details: Any = None, retryable: bool = False):
        super().__init__(message, status, details)
        self.retryable = retryable


class PersistenceError(ServiceError):
    """Database failure not attributable to bad input"""
    status = 500
