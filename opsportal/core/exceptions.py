"""
Custom exception hierarchy for the application.

Read-path failures (tenant resolution, permission checks) are absorbed by the
core into ``None``/``False`` results; only ``TenantResolutionError`` leaves the
resolver so callers can tell "backend unavailable" from "unknown domain".
Write-path failures propagate.
"""

from typing import Any

from fastapi import HTTPException, status


class PortalException(Exception):
    """Base exception for all application exceptions."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(PortalException):
    """Raised when an identity token cannot be verified."""
    pass


class AccessDeniedError(PortalException):
    """Raised by HTTP guards when the session lacks a capability or role."""
    pass


class TenantAccessDeniedError(AccessDeniedError):
    """Raised when the session organization is not allowed on the resolved tenant."""

    def __init__(self, domain_name: str, organization_id: str | None = None):
        super().__init__(
            "No access to this tenant",
            {"domain_name": domain_name, "organization_id": organization_id},
        )


class TenantResolutionError(PortalException):
    """
    Raised when a tenant lookup fails in the backend.

    Distinct from a domain that is simply not registered, which resolves
    to ``None``.
    """

    def __init__(self, domain: str, message: str = "Tenant resolution failed"):
        super().__init__(message, {"domain": domain})
        self.domain = domain


class DomainConflictError(PortalException):
    """Raised when a tenant domain name is already owned by another active domain."""

    def __init__(self, domain_name: str):
        super().__init__(
            f"Domain '{domain_name}' is already in use",
            {"domain_name": domain_name},
        )
        self.domain_name = domain_name


class ResourceNotFoundError(PortalException):
    """Raised when a requested resource doesn't exist."""
    pass


class NestedContextSwitchError(PortalException):
    """Raised when a session mutation is requested from inside a subscriber notification."""
    pass


# HTTP Exception helpers
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    """Return 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    """Return 403 Forbidden exception."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def not_found(detail: str = "Resource not found") -> HTTPException:
    """Return 404 Not Found exception."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def bad_request(detail: str = "Bad request") -> HTTPException:
    """Return 400 Bad Request exception."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def conflict(detail: str = "Resource already exists") -> HTTPException:
    """Return 409 Conflict exception."""
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def service_unavailable(detail: str = "Service temporarily unavailable") -> HTTPException:
    """Return 503 Service Unavailable exception."""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=detail,
    )
