"""
Core Exceptions
================

Custom exceptions for the application.

Bootstrap code raises these instead of terminating the process; the
startup orchestrator decides what a failure means.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class DependencyUnavailableError(ExternalServiceException):
    """
    A startup dependency could not be reached within its retry budget.

    Carries the number of attempts made and the last underlying error,
    which is reported verbatim.
    """

    def __init__(
        self,
        service_name: str,
        attempts: int,
        last_error: Optional[BaseException],
        details: Optional[dict] = None
    ):
        self.attempts = attempts
        self.last_error = last_error
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(
            service_name,
            f"unavailable after {attempts} {noun}, got error: {last_error}",
            details or {"attempts": attempts, "last_error": str(last_error)},
        )


class DatabaseUnavailableError(DependencyUnavailableError):
    """The relational store never became reachable."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__("Database", attempts, last_error)


class CacheUnavailableError(DependencyUnavailableError):
    """The Redis cache never became reachable."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__("Cache", attempts, last_error)
