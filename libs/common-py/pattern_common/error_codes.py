"""
Standardized error codes and exceptions for the pattern matching engine
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes"""

    # Retryable errors (1000-1999)
    STORE_UNAVAILABLE = "RETRY_1001"
    DATABASE_CONNECTION = "RETRY_1002"
    MESSAGE_BROKER_CONNECTION = "RETRY_1003"
    INDEX_UNAVAILABLE = "RETRY_1004"
    COMMIT_FAILED = "RETRY_1005"

    # Fatal errors (2000-2999)
    INVALID_EVENT_SCHEMA = "FATAL_2001"
    UNDECODABLE_IMAGE = "FATAL_2002"
    INVALID_CONFIGURATION = "FATAL_2005"

    @property
    def is_retryable(self) -> bool:
        """Check if error is retryable"""
        return self.value.startswith("RETRY_")

    @property
    def is_fatal(self) -> bool:
        """Check if error is fatal"""
        return self.value.startswith("FATAL_")


class SystemError(Exception):
    """Base exception with error code"""

    def __init__(self, error_code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(f"{error_code.value}: {message}")

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.error_code.is_retryable,
            "fatal": self.error_code.is_fatal,
        }


class RetryableError(SystemError):
    """Error that should be retried"""
    pass


class FatalError(SystemError):
    """Error that should not be retried"""
    pass


class DecodeError(FatalError):
    """Bytes are not a decodable image or are below the size floor."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.UNDECODABLE_IMAGE, message, details)


class TransientStoreError(RetryableError):
    """A single object-store read or page listing failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message, details)


class ScanPageError(TransientStoreError):
    """A page listing failed mid-scan; ``partial`` holds what was gathered before it."""

    def __init__(self, message: str, partial: Any, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.partial = partial


class IndexUnavailableError(RetryableError):
    """The compound query is not supported by the backing index right now."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INDEX_UNAVAILABLE, message, details)


class CommitError(RetryableError):
    """A batched write failed; the whole run is safe to redeliver."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.COMMIT_FAILED, message, details)
