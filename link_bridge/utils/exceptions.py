"""Custom exceptions for the Discord/Telegram link bridge."""

from typing import Optional


class LinkBridgeError(Exception):
    """Base exception for link bridge operations."""

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ConfigurationError(LinkBridgeError):
    """Exception raised for configuration-related errors.

    Covers missing environment values as well as a misconfigured sheet
    (no key column in the header row).
    """

    pass


class ValidationError(LinkBridgeError):
    """Exception raised for malformed inbound requests."""

    pass


class ProviderError(LinkBridgeError):
    """Exception raised when the identity provider yields no usable token or identity."""

    pass


class NotFoundError(LinkBridgeError):
    """Exception raised when the external identity is absent from the sheet."""

    def __init__(
        self, message: str, identity: str = "", error_code: Optional[str] = None
    ) -> None:
        super().__init__(message, error_code)
        self.identity = identity


class TableStoreError(LinkBridgeError):
    """Exception raised when the sheet could not be read."""

    pass


class WriteError(TableStoreError):
    """Exception raised when the sheet rejected a write."""

    pass
