"""
Exception classes for tasklink.
"""


class TaskLinkError(Exception):
    """Base exception for all tasklink errors."""
    pass


class ConfigurationError(TaskLinkError):
    """Raised when configuration is invalid or missing."""
    pass


class AdapterError(TaskLinkError):
    """Raised when a provider adapter call fails."""
    pass


class AuthorizationError(AdapterError):
    """Raised when a provider rejects or lacks credentials."""
    pass
