"""
Core Module
============

Framework-agnostic building blocks shared across the application.
"""

from exchangeapp.core.exceptions import (
    ApplicationException,
    ConfigurationException,
    ExternalServiceException,
    DependencyUnavailableError,
    DatabaseUnavailableError,
    CacheUnavailableError,
)

__all__ = [
    "ApplicationException",
    "ConfigurationException",
    "ExternalServiceException",
    "DependencyUnavailableError",
    "DatabaseUnavailableError",
    "CacheUnavailableError",
]
