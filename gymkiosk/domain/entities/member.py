"""Member ledger entities."""
from datetime import date, datetime
from typing import List, Literal, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from gymkiosk.domain.entities.face import to_embedding

MemberStatus = Literal["active", "suspended", "expired"]


class TicketHistoryEntry(BaseModel):
    """One change to a member's ticket balance."""
    id: str = Field(..., description="Unique identifier for the entry")
    date: datetime = Field(..., description="When the change happened")
    type: Literal["add", "use", "refund"] = Field(..., description="Kind of change")
    amount: int = Field(..., description="Number of tickets added, used or refunded")
    balance: int = Field(..., description="Remaining tickets after the change")
    note: Optional[str] = Field(None, description="Free-text note")


class Member(BaseModel):
    """Gym member as stored by the ledger.

    A member has at most one enrolled face embedding. Enrolling again
    replaces it.
    """
    id: str = Field(..., description="Opaque member key")
    name: str = Field(..., description="Display name")
    phone: str = Field("", description="Phone number, any formatting")
    status: MemberStatus = Field("active", description="Membership status")
    total_tickets: int = Field(0, ge=0, description="Tickets purchased in total")
    remaining_tickets: int = Field(0, ge=0, description="Tickets left to use")
    join_date: date = Field(default_factory=date.today, description="Registration date")
    face_embedding: Optional[np.ndarray] = Field(None, description="Enrolled face embedding")
    ticket_history: List[TicketHistoryEntry] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator('face_embedding', mode='before')
    @classmethod
    def validate_face_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Accept lists from JSON and freeze them as float32 arrays."""
        if v is None:
            return None
        return to_embedding(v)

    @field_serializer('face_embedding')
    def serialize_face_embedding(self, v: Optional[np.ndarray]) -> Optional[List[float]]:
        return None if v is None else [float(x) for x in v]

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_enrolled(self) -> bool:
        return self.face_embedding is not None


class AttendanceRecord(BaseModel):
    """A single check-in written by the ledger."""
    id: str = Field(..., description="Unique identifier for the record")
    member_id: str = Field(..., description="Key of the member who checked in")
    member_name: str = Field(..., description="Member name at check-in time")
    timestamp: datetime = Field(..., description="When the check-in happened")
    type: Literal["check-in"] = "check-in"
