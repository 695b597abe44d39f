"""Expand tour-type master templates into dated schedule rows (and back)."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Mapping

from backoffice.errors import MissingAnchorDates
from backoffice.logs import get_logger
from backoffice.planning.anchor import date_range
from backoffice.schemas import Anchor, MasterTemplate, ScheduleKind, ScheduleRow, TemplateEntry

logger = get_logger(__name__)


def segment_base(anchor: Anchor, template: MasterTemplate) -> date | None:
    """Date that template offsets count from.

    Transport legs are measured from the trip start.  Hotel stays only begin
    once the group reaches the destination country, so they are re-based by the
    template's stored ``segment_offset_days``.
    """
    if anchor.start is None:
        return None
    if template.kind == "hotel":
        return anchor.start + timedelta(days=template.segment_offset_days)
    return anchor.start


def expand_template(
    template: MasterTemplate,
    anchor: Anchor,
    booking_id: int,
    overrides: Mapping[str, str] | None = None,
) -> List[ScheduleRow]:
    """Produce the rows a booking gets from ``template``.

    ``overrides`` maps an entry name to user-customized notes recovered from
    the override cache; a non-empty override wins over the template default.
    Entries dated after the anchor end are dropped: templates for
    multi-country tours can run longer than the part that applies here.
    Several entries may share a date.
    """
    base = segment_base(anchor, template)
    if base is None or anchor.end is None:
        raise MissingAnchorDates(f"Booking {booking_id} has no anchor dates yet")
    overrides = overrides or {}

    rows: List[ScheduleRow] = []
    dropped = 0
    for entry in template.entries:
        if base + timedelta(days=entry.offset_days) > anchor.end:
            dropped += 1
            continue
        rows.append(_row_for(entry, template.kind, base, booking_id, overrides))
    if dropped:
        logger.info(
            "Template %s/%s: %d of %d entries fall after %s for booking %s",
            template.tour_type_code,
            template.kind,
            dropped,
            len(template.entries),
            anchor.end,
            booking_id,
        )
    return rows


def _row_for(
    entry: TemplateEntry,
    kind: ScheduleKind,
    base: date,
    booking_id: int,
    overrides: Mapping[str, str],
) -> ScheduleRow:
    row_date = base + timedelta(days=entry.offset_days)
    custom = overrides.get(entry.name) if entry.name else None
    if custom:
        logger.info("Preserved custom notes for day %d: %s", entry.day_number, entry.name)
    return ScheduleRow(
        booking_id=booking_id,
        kind=kind,
        day_number=entry.day_number,
        date=row_date,
        name=entry.name,
        city=entry.city,
        notes=custom or entry.notes,
        provider=entry.provider,
        check_out_date=row_date + timedelta(days=entry.nights) if kind == "hotel" else None,
    )


def empty_rows(anchor: Anchor, booking_id: int) -> List[ScheduleRow]:
    """One blank transport row per anchor day, for tour types without a template."""
    if not anchor.ready:
        raise MissingAnchorDates(f"Booking {booking_id} has no anchor dates yet")
    return [
        ScheduleRow(booking_id=booking_id, kind="transport", day_number=0, date=day)
        for day in date_range(anchor.start, anchor.end)  # type: ignore[arg-type]
    ]


def template_from_schedule(
    rows: Iterable[ScheduleRow],
    anchor: Anchor,
    tour_type_code: str,
    kind: ScheduleKind,
    segment_offset_days: int = 0,
) -> MasterTemplate:
    """Derive a master template from an existing booking's schedule.

    Offsets are measured from the same base :func:`expand_template` would use,
    so expanding the result against the same anchor reproduces the dates.
    """
    template = MasterTemplate(
        tour_type_code=tour_type_code.upper(),
        kind=kind,
        segment_offset_days=segment_offset_days,
    )
    base = segment_base(anchor, template)
    if base is None:
        raise MissingAnchorDates(f"No anchor dates to measure {tour_type_code} offsets from")

    ordered = sorted(rows, key=lambda r: (r.date, r.id is None, r.id or 0))
    for idx, row in enumerate(ordered):
        offset = (row.date - base).days
        if offset < 0:
            logger.warning("Skipping %s on %s: before template base %s", row.name or "row", row.date, base)
            continue
        nights = (row.check_out_date - row.date).days if row.check_out_date else 1
        template.entries.append(
            TemplateEntry(
                day_number=row.day_number or idx + 1,
                offset_days=offset,
                name=row.name,
                city=row.city,
                notes=row.notes,
                provider=row.provider,
                nights=max(0, nights),
            )
        )
    return template
