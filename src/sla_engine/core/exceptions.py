"""
Core Exceptions
================

Custom exceptions for the engine following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Any, Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""

    @classmethod
    def from_pydantic(cls, message: str, error: Any) -> "ValidationException":
        """Wrap a pydantic ValidationError, keeping only JSON-safe parts."""
        errors = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
            for err in error.errors()
        ]
        return cls(message, {"errors": errors})


class ResourceNotFoundException(DomainException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""
