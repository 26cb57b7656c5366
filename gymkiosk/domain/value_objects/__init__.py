"""Value objects package."""
from .kiosk import CheckInReceipt, DebounceState, KioskState, KioskStatus, Transition
from .recognition import Frame, GalleryEntry, MatchResult

__all__ = [
    "CheckInReceipt",
    "DebounceState",
    "Frame",
    "GalleryEntry",
    "KioskState",
    "KioskStatus",
    "MatchResult",
    "Transition",
]
