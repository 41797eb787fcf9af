"""Error handling utilities for Google Sheets API operations."""

import logging
import time
from typing import Any, Dict, Optional, Type

from googleapiclient.errors import HttpError
import requests

from .exceptions import LinkBridgeError, TableStoreError

logger = logging.getLogger(__name__)


class SheetsErrorHandler:
    """Categorizes and logs Sheets API errors.

    No retry is performed; the categorization only feeds the logs so an
    operator can tell a transient store fault from a misconfigured sheet.
    """

    # HTTP status codes that indicate a transient store fault
    RETRYABLE_STATUS_CODES = {
        429,  # Too Many Requests
        500,  # Internal Server Error
        502,  # Bad Gateway
        503,  # Service Unavailable
        504,  # Gateway Timeout
    }

    def get_status_code(self, error: Exception) -> Optional[int]:
        """Extract the HTTP status code from a Sheets API error, if any."""
        if isinstance(error, HttpError):
            return getattr(error.resp, "status", None)
        if isinstance(error, requests.exceptions.RequestException):
            if error.response is not None:
                return error.response.status_code
        return None

    def is_retryable_error(self, error: Exception) -> bool:
        """Determine if an error looks transient."""
        status_code = self.get_status_code(error)
        if status_code is not None:
            return int(status_code) in self.RETRYABLE_STATUS_CODES

        if isinstance(error, (ConnectionError, TimeoutError)):
            return True
        if isinstance(
            error,
            (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
        ):
            return True

        return False

    def categorize_error(self, error: Exception) -> Dict[str, Any]:
        """Categorize a Sheets API error for logging."""
        error_info = {
            "type": type(error).__name__,
            "message": str(error),
            "retryable": self.is_retryable_error(error),
            "category": "unknown",
        }

        status_code = self.get_status_code(error)
        if isinstance(error, HttpError):
            error_info["category"] = "sheets_api"
            error_info["status_code"] = status_code
            reason = getattr(error, "reason", None)
            if reason:
                error_info["reason"] = reason
            if status_code in (401, 403):
                error_info["category"] = "permission"
            elif status_code == 400:
                error_info["category"] = "bad_range"

        elif isinstance(error, requests.exceptions.RequestException):
            error_info["category"] = "http"
            if status_code is not None:
                error_info["status_code"] = status_code

        elif isinstance(error, (ConnectionError, TimeoutError, OSError)):
            error_info["category"] = "network"

        return error_info

    def handle_error(
        self, error: Exception, operation: str, context: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        """Log a Sheets API error with context and return its categorization."""
        error_info = self.categorize_error(error)
        context = context or {}

        log_message = f"Sheets API error in {operation}: {error_info['message']}"
        if context:
            log_message += f" | Context: {context}"

        if error_info["retryable"]:
            logger.warning(f"Transient {log_message}")
        else:
            logger.error(f"Fatal {log_message}")

        logger.debug(f"Error details: {error_info}")
        return error_info


class SheetsOperationContext:
    """Context manager that times a Sheets API call and wraps its failures."""

    def __init__(
        self,
        name: str,
        handler: Optional[SheetsErrorHandler] = None,
        error_class: Type[TableStoreError] = TableStoreError,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.handler = handler or SheetsErrorHandler()
        self.error_class = error_class
        self.context = context or {}
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"Starting Sheets API operation: {self.name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time if self.start_time else 0

        if exc_type is None:
            logger.debug(f"Sheets API operation completed: {self.name} ({duration:.2f}s)")
            return False

        if isinstance(exc_val, LinkBridgeError):
            return False

        if isinstance(exc_val, Exception):
            context = dict(self.context, duration=f"{duration:.2f}s")
            error_info = self.handler.handle_error(exc_val, self.name, context)
            raise self.error_class(
                f"{self.name} failed: {exc_val}",
                error_code=error_info.get("category"),
            ) from exc_val

        return False


def safe_sheets_operation(
    operation_name: str,
    error_handler: Optional[SheetsErrorHandler] = None,
    error_class: Type[TableStoreError] = TableStoreError,
    context: Optional[Dict[str, Any]] = None,
) -> SheetsOperationContext:
    """Context manager for Sheets API operations.

    Any non-bridge exception raised inside the block is logged and re-raised
    as ``error_class``.
    """
    return SheetsOperationContext(operation_name, error_handler, error_class, context)
