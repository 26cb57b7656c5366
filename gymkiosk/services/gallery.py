"""Gallery snapshots built from the member ledger."""
from typing import Iterable, List

from gymkiosk.domain.entities.member import Member
from gymkiosk.domain.value_objects.recognition import GalleryEntry


def to_gallery_entry(member: Member) -> GalleryEntry:
    return GalleryEntry(
        identity=member.id,
        embedding=member.face_embedding,
        phone=member.phone,
        status=member.status,
    )


def build_gallery(members: Iterable[Member]) -> List[GalleryEntry]:
    """Build the matchable gallery from a member snapshot.

    Only active members with an enrolled face are included; suspended and
    expired members never match.
    """
    return [
        to_gallery_entry(member)
        for member in members
        if member.is_active and member.is_enrolled
    ]
