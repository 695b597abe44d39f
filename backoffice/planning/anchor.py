"""Anchor-date resolution for template expansion."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List

from backoffice.schemas import Anchor, Booking, RosterMember


def resolve_anchor(roster: Iterable[RosterMember], booking: Booking | None) -> Anchor:
    """Return the date range a booking's templates are measured from.

    Individual check-in/check-out dates from the roster are the ground truth
    for multi-country tours where members converge on the destination via
    different legs: when at least one member carries both dates, the anchor
    spans the earliest check-in to the latest check-out of the dated members.
    Members with only one (or neither) date are ignored here.  Without any
    dated member the booking's nominal departure/end dates are used, and when
    those are missing as well both ends come back as ``None``.
    """
    dated = [m for m in roster if m.check_in_date and m.check_out_date]
    if dated:
        return Anchor(
            start=min(m.check_in_date for m in dated),  # type: ignore[type-var]
            end=max(m.check_out_date for m in dated),  # type: ignore[type-var]
        )
    if booking is None:
        return Anchor()
    return Anchor(start=booking.departure_date, end=booking.end_date)


def date_range(start: date, end: date) -> List[date]:
    """Every date from ``start`` to ``end`` inclusive (empty when reversed)."""
    days = (end - start).days
    return [start + timedelta(days=i) for i in range(days + 1)] if days >= 0 else []
