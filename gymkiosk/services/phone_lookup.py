"""Phone-suffix identity lookup, the non-biometric check-in path."""
import re
from typing import Iterable, List

from gymkiosk.domain.entities.member import Member

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def match_by_suffix(digits: str, members: Iterable[Member]) -> List[Member]:
    """Return active members whose phone number ends with ``digits``.

    Both the query and the stored phone numbers are reduced to their digits
    first, so ``"010-1234-5678"`` matches ``"5678"``. An empty query matches
    nobody. Input order is preserved.
    """
    suffix = digits_only(digits)
    if not suffix:
        return []
    return [
        member for member in members
        if member.is_active and digits_only(member.phone).endswith(suffix)
    ]
