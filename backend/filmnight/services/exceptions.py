"""
Custom exceptions for the service layer.

Services raise these instead of HTTPException; main.py translates each one
into the matching HTTP status.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed or out-of-range input, or an invalid state transition."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a referenced id or token does not exist."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class ConflictError(ServiceError):
    """Raised when a uniqueness invariant would be violated."""


class ReferentialConstraintError(ServiceError):
    """Raised when an operation would orphan a required foreign key."""
