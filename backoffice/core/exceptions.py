"""Custom exception classes for the sales back office."""

from fastapi import status


class BackOfficeError(Exception):
    """Base exception for the back office.

    ``code`` is the stable machine-readable reason returned to clients,
    ``status_code`` the HTTP status it maps to.
    """

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationRequired(BackOfficeError):
    """Raised when a request carries no valid identity."""
    code = "AuthenticationRequired"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccountDisabled(BackOfficeError):
    """Raised when the identity is marked inactive."""
    code = "AccountDisabled"
    status_code = status.HTTP_403_FORBIDDEN


class AccessDenied(BackOfficeError):
    """Raised when the role lacks permission for a route or action."""
    code = "AccessDenied"
    status_code = status.HTTP_403_FORBIDDEN


class ProjectAccessDenied(BackOfficeError):
    """Raised when the project scope does not contain the target project."""
    code = "ProjectAccessDenied"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(BackOfficeError):
    """Raised when input validation fails."""
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class ResourceNotFoundError(BackOfficeError):
    """Raised when a requested resource is not found."""
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(BackOfficeError):
    """Raised when an operation conflicts with the current state."""
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class IntegrityFault(BackOfficeError):
    """Raised (or logged) when stored data is inconsistent."""
    code = "INTEGRITY_FAULT"


class AuditWriteError(BackOfficeError):
    """Raised when a mandatory audit entry could not be written."""
    code = "AUDIT_WRITE_FAILED"


class InternalError(BackOfficeError):
    """Raised on unexpected failures."""
    pass

