"""
Domain errors raised by services and rendered by the API layer.

Messages are user-facing and shown as-is by the client.
"""
from fastapi import status


class DomainError(Exception):
    """Base class for errors with a user-facing message."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(DomainError):
    """Input rejected before any write happened."""
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDenied(DomainError):
    """Acting user is not the owner of the resource."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(DomainError):
    """A uniqueness constraint rejected the write."""
    status_code = status.HTTP_409_CONFLICT


class SaveFailed(DomainError):
    """The datastore or storage rejected a write."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "저장에 실패했습니다."):
        super().__init__(message)


class PartialWriteFailed(SaveFailed):
    """A multi-step write failed; completed steps were compensated."""


class UpstreamError(DomainError):
    """The hosted auth service rejected an admin call."""
    status_code = status.HTTP_502_BAD_GATEWAY


class ConfigurationMissing(DomainError):
    """A server-side setting required by the operation is empty."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
