"""
Custom exceptions for the e-bike tracker.

This module provides a hierarchy of exceptions for better error handling
and more informative error messages throughout the application.
"""


class EbikeTrackerError(Exception):
    """Base exception for all e-bike tracker errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class StorageError(EbikeTrackerError):
    """Record store read or write failed."""

    def __init__(self, message: str, operation: str = None, key: str = None):
        details = {}
        if operation:
            details['operation'] = operation
        if key:
            details['key'] = key
        super().__init__(message, details)
        self.operation = operation
        self.key = key


class AuthenticationError(EbikeTrackerError):
    """Request could not be resolved to a user."""

    def __init__(self, message: str, status_code: int = 401, strategy: str = None):
        details = {}
        if strategy:
            details['strategy'] = strategy
        super().__init__(message, details)
        self.status_code = status_code
        self.strategy = strategy


class ValidationError(EbikeTrackerError):
    """Request payload failed validation."""

    def __init__(self, message: str, field: str = None, value=None):
        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = value
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigurationError(EbikeTrackerError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, config_key: str = None):
        details = {}
        if config_key:
            details['config_key'] = config_key
        super().__init__(message, details)
        self.config_key = config_key
