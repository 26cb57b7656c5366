"""Member ledger interface."""
from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ...entities.member import AttendanceRecord, Member
from ...value_objects.kiosk import CheckInReceipt


class MemberLedger(ABC):
    """Interface for the member, ticket and attendance store.

    The kiosk reads a fresh member list on every lookup and never caches
    it, so enrollments and suspensions show up on the next scan.
    """

    @abstractmethod
    async def list_members(self) -> List[Member]:
        """
        List all members in insertion order, regardless of status.

        Returns:
            List of members
        """
        pass

    @abstractmethod
    async def get_member(self, member_id: str) -> Member:
        """
        Get a single member.

        Raises:
            MemberNotFoundError: If no member has this key
        """
        pass

    @abstractmethod
    async def add_member(
        self,
        name: str,
        phone: str,
        total_tickets: int = 0,
        status: str = "active",
    ) -> Member:
        """
        Register a new member with an initial ticket balance.

        Returns:
            The stored member
        """
        pass

    @abstractmethod
    async def save_face_embedding(self, member_id: str, embedding: np.ndarray) -> Member:
        """
        Store the enrolled face embedding of a member, replacing any previous one.

        Raises:
            MemberNotFoundError: If no member has this key
        """
        pass

    @abstractmethod
    async def commit_check_in(self, member_id: str) -> CheckInReceipt:
        """
        Use one ticket and record attendance.

        Args:
            member_id: Key of the member checking in

        Returns:
            CheckInReceipt with the updated member and the attendance record

        Raises:
            MemberNotFoundError: If no member has this key
            InsufficientCreditError: If the member has no tickets left
        """
        pass

    @abstractmethod
    async def list_attendance(self) -> List[AttendanceRecord]:
        """
        List attendance records, newest first.

        Returns:
            List of attendance records
        """
        pass

    @abstractmethod
    async def delete_attendance(self, record_id: str, refund: bool = True) -> AttendanceRecord:
        """
        Delete an attendance record, optionally giving the ticket back.

        Raises:
            AttendanceNotFoundError: If no record has this key
        """
        pass
