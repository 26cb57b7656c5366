"""JSON file implementation of the member ledger."""
import asyncio
import os
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Union

import numpy as np
from pydantic import BaseModel, Field

from gymkiosk.core.config import settings
from gymkiosk.core.exceptions import (
    AttendanceNotFoundError,
    InsufficientCreditError,
    LedgerError,
    MemberNotFoundError,
)
from gymkiosk.core.logging import get_logger
from gymkiosk.domain.entities.face import to_embedding
from gymkiosk.domain.entities.member import AttendanceRecord, Member, TicketHistoryEntry
from gymkiosk.domain.interfaces.ledger.member_ledger import MemberLedger
from gymkiosk.domain.value_objects.kiosk import CheckInReceipt

logger = get_logger(__name__)

_SETTINGS_PATH = object()


class LedgerDocument(BaseModel):
    """On-disk layout of the ledger file."""
    members: List[Member] = Field(default_factory=list)
    attendance: List[AttendanceRecord] = Field(default_factory=list, description="Newest first")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class JsonMemberLedger(MemberLedger):
    """Member ledger persisted as a single JSON document.

    Every read loads the file again so changes made by other tools show up
    immediately. Writes go to a temporary file that then replaces the
    ledger. Mutations are serialized with an asyncio lock.

    Passing ``path=None`` keeps the document in memory only.
    """

    def __init__(self, path: Union[str, Path, None, object] = _SETTINGS_PATH) -> None:
        """Initialize the ledger without touching the file.

        Args:
            path: Ledger file; defaults to LEDGER_PATH read at construction
                time. ``None`` keeps the document in memory.
        """
        if path is _SETTINGS_PATH:
            path = settings.LEDGER_PATH
        self.path = Path(path) if path is not None else None
        self._memory = LedgerDocument().model_dump_json()
        self._lock = asyncio.Lock()

    def _read(self) -> LedgerDocument:
        if self.path is None:
            return LedgerDocument.model_validate_json(self._memory)
        if not self.path.exists():
            return LedgerDocument()
        try:
            return LedgerDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.error("Ledger file unreadable", path=str(self.path), error=str(e))
            raise LedgerError(f"Failed to read ledger: {str(e)}", details={"path": str(self.path)})

    def _write(self, document: LedgerDocument) -> None:
        if self.path is None:
            self._memory = document.model_dump_json()
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def _load(self) -> LedgerDocument:
        return await asyncio.to_thread(self._read)

    async def _save(self, document: LedgerDocument) -> None:
        await asyncio.to_thread(self._write, document)

    @staticmethod
    def _index_of(document: LedgerDocument, member_id: str) -> int:
        for i, member in enumerate(document.members):
            if member.id == member_id:
                return i
        raise MemberNotFoundError(details={"member_id": member_id})

    async def list_members(self) -> List[Member]:
        return (await self._load()).members

    async def get_member(self, member_id: str) -> Member:
        document = await self._load()
        return document.members[self._index_of(document, member_id)]

    async def add_member(
        self,
        name: str,
        phone: str,
        total_tickets: int = 0,
        status: str = "active",
    ) -> Member:
        async with self._lock:
            document = await self._load()
            member = Member(
                id=_new_id(),
                name=name,
                phone=phone,
                status=status,
                total_tickets=total_tickets,
                remaining_tickets=total_tickets,
                join_date=date.today(),
                ticket_history=[
                    TicketHistoryEntry(
                        id=_new_id(),
                        date=_now(),
                        type="add",
                        amount=total_tickets,
                        balance=total_tickets,
                        note="Initial registration",
                    )
                ],
            )
            document.members.append(member)
            await self._save(document)

        logger.info("Member added", member_id=member.id, tickets=total_tickets)
        return member

    async def update_member(self, member: Member) -> Member:
        """Replace a stored member with an edited copy."""
        async with self._lock:
            document = await self._load()
            document.members[self._index_of(document, member.id)] = member
            await self._save(document)
        return member

    async def save_face_embedding(self, member_id: str, embedding: np.ndarray) -> Member:
        async with self._lock:
            document = await self._load()
            index = self._index_of(document, member_id)
            member = document.members[index].model_copy(update={"face_embedding": to_embedding(embedding)})
            document.members[index] = member
            await self._save(document)

        logger.info("Face embedding stored", member_id=member_id)
        return member

    async def commit_check_in(self, member_id: str) -> CheckInReceipt:
        async with self._lock:
            document = await self._load()
            index = self._index_of(document, member_id)
            member = document.members[index]

            if member.remaining_tickets <= 0:
                raise InsufficientCreditError(details={"member_id": member_id})

            balance = member.remaining_tickets - 1
            now = _now()
            member = member.model_copy(update={
                "remaining_tickets": balance,
                "ticket_history": [
                    *member.ticket_history,
                    TicketHistoryEntry(
                        id=_new_id(), date=now, type="use", amount=1, balance=balance, note="Check-in"
                    ),
                ],
            })
            record = AttendanceRecord(
                id=_new_id(),
                member_id=member.id,
                member_name=member.name,
                timestamp=now,
            )
            document.members[index] = member
            document.attendance.insert(0, record)
            await self._save(document)

        return CheckInReceipt(member=member, record=record)

    async def list_attendance(self) -> List[AttendanceRecord]:
        return (await self._load()).attendance

    async def delete_attendance(self, record_id: str, refund: bool = True) -> AttendanceRecord:
        async with self._lock:
            document = await self._load()
            record = next((r for r in document.attendance if r.id == record_id), None)
            if record is None:
                raise AttendanceNotFoundError(
                    "Attendance record not found", details={"record_id": record_id}
                )

            if refund:
                try:
                    index = self._index_of(document, record.member_id)
                except MemberNotFoundError:
                    logger.warning("Refund skipped, member no longer exists", member_id=record.member_id)
                else:
                    member = document.members[index]
                    balance = member.remaining_tickets + 1
                    document.members[index] = member.model_copy(update={
                        "remaining_tickets": balance,
                        "ticket_history": [
                            *member.ticket_history,
                            TicketHistoryEntry(
                                id=_new_id(),
                                date=_now(),
                                type="refund",
                                amount=1,
                                balance=balance,
                                note=f"Attendance cancelled ({record.timestamp.date().isoformat()})",
                            ),
                        ],
                    })

            document.attendance = [r for r in document.attendance if r.id != record_id]
            await self._save(document)

        logger.info("Attendance deleted", record_id=record_id, refunded=refund)
        return record
