"""
Service-level error taxonomy.

Services raise these; the handler registered in main.py converts them into
JSON responses with the matching HTTP status code.
"""
from fastapi import status


class ServiceError(Exception):
    """Base class for every expected failure of a service operation"""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidArgument(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidState(ServiceError):
    """Requested transition is not allowed from the current state"""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidSignature(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidOrExpired(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamFailure(ServiceError):
    """The payment gateway (or another remote collaborator) failed"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
