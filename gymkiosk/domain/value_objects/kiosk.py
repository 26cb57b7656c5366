"""Kiosk session value objects."""
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from gymkiosk.domain.entities.member import AttendanceRecord, Member


class KioskStatus(str, Enum):
    """What the kiosk is currently showing."""
    IDLE = "idle"
    DETECTING = "detecting"
    SUCCESS = "success"
    ERROR = "error"
    SELECTING = "selecting"


class CheckInReceipt(BaseModel):
    """Outcome of a successful check-in."""
    member: Member = Field(..., description="Member state after the ticket was used")
    record: AttendanceRecord = Field(..., description="Attendance record that was written")

    @property
    def updated_credit(self) -> int:
        return self.member.remaining_tickets


class DebounceState(BaseModel):
    """Consecutive-match counter for the camera loop."""
    last_identity: Optional[str] = None
    consecutive_count: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)


class KioskState(BaseModel):
    """Complete, immutable kiosk state.

    ``fatal`` marks an error that is not dismissed automatically, such as
    a missing camera or an embedding model that never loaded.
    """
    status: KioskStatus = KioskStatus.IDLE
    manual_mode: bool = False
    digits: str = ""
    message: str = ""
    receipt: Optional[CheckInReceipt] = None
    candidates: Tuple[Member, ...] = ()
    debounce: DebounceState = Field(default_factory=DebounceState)
    fatal: bool = False

    model_config = ConfigDict(frozen=True)


class Transition(NamedTuple):
    """Next state plus the identity to check in, if any."""
    state: KioskState
    commit: Optional[str] = None
