"""Error taxonomy shared by the payment engine and the REST layer."""

from typing import Optional


class PortalError(Exception):
    """Base class for every error the engine surfaces to callers."""

    code = "portal_error"
    status_code = 500

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PortalError):
    """Malformed input, raised before any store mutation."""

    code = "validation_error"
    status_code = 422


class StateConflictError(PortalError):
    """The record is not in a status that permits the requested transition."""

    code = "state_conflict"
    status_code = 409


class NotFoundError(PortalError):
    code = "not_found"
    status_code = 404


class PermissionDeniedError(PortalError):
    code = "permission_denied"
    status_code = 403


class DependencyError(PortalError):
    """Storage or notification channel failure."""

    code = "dependency_error"
    status_code = 503
