"""Custom exceptions for Markdown to Org conversion."""

from typing import Any


class MdOrgError(Exception):
    """Base exception for Markdown to Org conversion."""

    def __init__(self, message: str, error_details: dict[str, Any] | None = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_details: Optional dictionary with detailed error information
        """
        super().__init__(message)
        self.error_details = error_details


class MdOrgSessionError(MdOrgError):
    """Raised when a conversion session is used outside its lifecycle."""


class MdOrgSettingsError(MdOrgError):
    """Raised when converter settings are invalid."""


class MdOrgProducerError(MdOrgError):
    """Raised when a streaming producer fails."""
