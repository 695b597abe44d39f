"""Room counts derived from roster room preferences."""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Literal, Optional

from backoffice.schemas import ExtraNights, RoomBreakdown, RosterMember

RoomType = Literal["double", "twin", "single"]

DOUBLE_SYNONYMS = frozenset({"DBL", "DZ", "DOUBLE", "DRZ"})
TWIN_SYNONYMS = frozenset({"TWN", "TWIN"})
# Only explicit single codes count as single preferences; a blank preference
# is unknown, not a request for a single room.
SINGLE_SYNONYMS = frozenset({"SNGL", "SGL", "EZ", "SINGLE"})


def _code(preference: Optional[str]) -> str:
    return (preference or "").strip().upper()


def classify_room(preference: Optional[str]) -> RoomType:
    code = _code(preference)
    if code in DOUBLE_SYNONYMS:
        return "double"
    if code in TWIN_SYNONYMS:
        return "twin"
    return "single"


def room_breakdown(preferences: Iterable[Optional[str]]) -> RoomBreakdown:
    """Rooms needed for a list of preferences.

    Doubles pair up and an odd one out gets a single room; twins round up.
    """
    counts = Counter(classify_room(p) for p in preferences)
    doubles, twins, singles = counts["double"], counts["twin"], counts["single"]
    return RoomBreakdown(
        double_rooms=doubles // 2,
        twin_rooms=(twins + 1) // 2,
        single_rooms=singles + doubles % 2,
    )


def count_single_preferences(roster: Iterable[RosterMember]) -> int:
    return sum(1 for member in roster if _code(member.room_preference) in SINGLE_SYNONYMS)


def count_early_arrival_nights(roster: Iterable[RosterMember]) -> ExtraNights:
    """Extra hotel nights for members checking in before the group.

    The group check-in is the most common check-in date (first seen wins a
    tie).  Each earlier arrival adds its day difference to single or double
    nights depending on the member's room preference.
    """
    members = [m for m in roster if m.check_in_date]
    if not members:
        return ExtraNights()
    group_check_in = Counter(m.check_in_date for m in members).most_common(1)[0][0]

    extra = ExtraNights()
    for member in members:
        nights = (group_check_in - member.check_in_date).days  # type: ignore[operator]
        if nights <= 0:
            continue
        if _code(member.room_preference) in SINGLE_SYNONYMS:
            extra.single_nights += nights
        else:
            extra.double_nights += nights
    return extra
