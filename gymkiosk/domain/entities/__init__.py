"""Domain entities package."""
from .face import BoundingBox, Face, to_embedding
from .member import AttendanceRecord, Member, MemberStatus, TicketHistoryEntry

__all__ = [
    "AttendanceRecord",
    "BoundingBox",
    "Face",
    "Member",
    "MemberStatus",
    "TicketHistoryEntry",
    "to_embedding",
]
