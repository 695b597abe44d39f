from datetime import date

import pytest

from backoffice.errors import MissingAnchorDates
from backoffice.planning.template_expander import empty_rows, expand_template, template_from_schedule
from backoffice.schemas import Anchor, MasterTemplate, ScheduleRow, TemplateEntry


def _template(kind="transport", segment_offset_days=0, entries=None) -> MasterTemplate:
    return MasterTemplate(
        tour_type_code="ER",
        kind=kind,
        segment_offset_days=segment_offset_days,
        entries=entries
        or [
            TemplateEntry(day_number=1, offset_days=0, name="Tashkent City Tour", notes="Default notes"),
            TemplateEntry(day_number=2, offset_days=1, name="Tashkent - Chimgan - Tashkent"),
            TemplateEntry(day_number=3, offset_days=2, name="Samarkand City Tour"),
        ],
    )


ANCHOR = Anchor(start=date(2025, 9, 22), end=date(2025, 9, 26))


def test_transport_rows_are_dated_from_anchor_start():
    rows = expand_template(_template(), ANCHOR, booking_id=3)

    assert [r.date for r in rows] == [date(2025, 9, 22), date(2025, 9, 23), date(2025, 9, 24)]
    assert [r.name for r in rows] == ["Tashkent City Tour", "Tashkent - Chimgan - Tashkent", "Samarkand City Tour"]
    assert all(r.booking_id == 3 and r.id is None for r in rows)
    assert rows[0].notes == "Default notes"
    assert rows[0].check_out_date is None


def test_hotel_rows_are_rebased_by_segment_offset():
    template = _template(
        kind="hotel",
        segment_offset_days=4,
        entries=[
            TemplateEntry(day_number=1, offset_days=0, name="Hotel Uzbekistan", nights=2),
            TemplateEntry(day_number=3, offset_days=2, name="Hotel Bibi Khanum", nights=3),
        ],
    )
    anchor = Anchor(start=date(2025, 9, 18), end=date(2025, 9, 30))

    rows = expand_template(template, anchor, booking_id=3)

    assert [(r.date, r.check_out_date) for r in rows] == [
        (date(2025, 9, 22), date(2025, 9, 24)),
        (date(2025, 9, 24), date(2025, 9, 27)),
    ]
    assert all(r.kind == "hotel" for r in rows)


def test_expansion_stops_when_template_outruns_anchor():
    entries = [TemplateEntry(day_number=i + 1, offset_days=i, name=f"Leg {i + 1}") for i in range(8)]
    anchor = Anchor(start=date(2025, 9, 22), end=date(2025, 9, 24))

    rows = expand_template(_template(entries=entries), anchor, booking_id=3)

    assert [r.name for r in rows] == ["Leg 1", "Leg 2", "Leg 3"]


def test_legs_sharing_a_day_do_not_crowd_out_later_legs():
    entries = [
        TemplateEntry(day_number=1, offset_days=0, name="Mahalliy Aeroport-Hotel"),
        TemplateEntry(day_number=1, offset_days=0, name="Tashkent City Tour"),
        TemplateEntry(day_number=2, offset_days=1, name="Samarkand City Tour"),
        TemplateEntry(day_number=3, offset_days=2, name="Hotel- Xalqaro Aeroport"),
    ]
    anchor = Anchor(start=date(2025, 9, 22), end=date(2025, 9, 24))

    rows = expand_template(_template(entries=entries), anchor, booking_id=3)

    assert [r.name for r in rows] == [e.name for e in entries]
    assert rows[-1].date == date(2025, 9, 24)


def test_sparse_offsets_past_anchor_end_are_dropped():
    entries = [
        TemplateEntry(day_number=1, offset_days=0, name="Tashkent City Tour"),
        TemplateEntry(day_number=9, offset_days=8, name="Hotel- Xalqaro Aeroport"),
    ]
    anchor = Anchor(start=date(2025, 9, 22), end=date(2025, 9, 24))

    rows = expand_template(_template(entries=entries), anchor, booking_id=3)

    assert [r.name for r in rows] == ["Tashkent City Tour"]
    assert all(r.date <= anchor.end for r in rows)


def test_override_notes_replace_template_defaults():
    rows = expand_template(
        _template(),
        ANCHOR,
        booking_id=3,
        overrides={"Tashkent City Tour": "Custom: skip the museum", "Samarkand City Tour": ""},
    )

    assert rows[0].notes == "Custom: skip the museum"
    assert rows[2].notes == ""


def test_expansion_requires_anchor_dates():
    with pytest.raises(MissingAnchorDates):
        expand_template(_template(), Anchor(start=date(2025, 9, 22)), booking_id=3)


def test_empty_rows_cover_every_anchor_day():
    rows = empty_rows(ANCHOR, booking_id=9)

    assert len(rows) == 5
    assert {r.day_number for r in rows} == {0}
    assert all(r.name == "" and r.kind == "transport" for r in rows)
    assert rows[-1].date == date(2025, 9, 26)


def test_schedule_saved_as_template_expands_back_to_same_dates():
    rows = [
        ScheduleRow(id=11, booking_id=3, kind="hotel", day_number=1, date=date(2025, 9, 23),
                    check_out_date=date(2025, 9, 25), name="Hotel Uzbekistan"),
        ScheduleRow(id=12, booking_id=3, kind="hotel", day_number=0, date=date(2025, 9, 25),
                    check_out_date=date(2025, 9, 26), name="Hotel Bibi Khanum", notes="Late check-in"),
        ScheduleRow(id=10, booking_id=3, kind="hotel", day_number=0, date=date(2025, 9, 21), name="Early stay"),
    ]
    anchor = Anchor(start=date(2025, 9, 21), end=date(2025, 9, 27))

    template = template_from_schedule(rows, anchor, "er", "hotel", segment_offset_days=1)

    assert template.tour_type_code == "ER"
    assert [(e.name, e.offset_days, e.nights) for e in template.entries] == [
        ("Hotel Uzbekistan", 1, 2),
        ("Hotel Bibi Khanum", 3, 1),
    ]
    assert template.entries[1].day_number == 3
    assert template.entries[1].notes == "Late check-in"

    expanded = expand_template(template, anchor, booking_id=3)
    assert [(r.date, r.check_out_date) for r in expanded] == [
        (date(2025, 9, 23), date(2025, 9, 25)),
        (date(2025, 9, 25), date(2025, 9, 26)),
    ]
