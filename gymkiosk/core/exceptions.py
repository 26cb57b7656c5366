"""Custom exceptions for the gym check-in kiosk."""
from typing import Optional


class KioskError(Exception):
    """Base exception for kiosk operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize kiosk error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidImageError(KioskError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class NoFaceDetectedError(KioskError):
    """Raised when an enrollment image contains no usable face."""
    pass


class ModelLoadError(KioskError):
    """Raised when the embedding model fails to load after all attempts."""
    pass


class InvalidEmbeddingError(KioskError):
    """Raised when an embedding has the wrong shape for comparison."""
    pass


class CameraUnavailableError(KioskError):
    """Raised when the camera cannot be opened or was denied."""
    pass


class LedgerError(KioskError):
    """Base exception for member ledger operations."""
    pass


class CheckInError(LedgerError):
    """Raised when the ledger rejects a check-in."""
    pass


class InsufficientCreditError(CheckInError):
    """Raised when a member has no remaining tickets."""

    def __init__(self, message: str = "insufficient credit", details: Optional[dict] = None):
        super().__init__(message, details)


class MemberNotFoundError(CheckInError):
    """Raised when an identity is not present in the ledger."""

    def __init__(self, message: str = "identity not found", details: Optional[dict] = None):
        super().__init__(message, details)


class AttendanceNotFoundError(LedgerError):
    """Raised when an attendance record does not exist."""
    pass
