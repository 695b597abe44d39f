from datetime import date, datetime

from backoffice.planning.reconciler import apply_patch, merge_overrides, notes_by_content_key, patches_by_row
from backoffice.schemas import CachedPatch, ScheduleRow


def _row(row_id, name="Tashkent City Tour", notes=""):
    return ScheduleRow(id=row_id, booking_id=5, day_number=1, date=date(2025, 9, 22), name=name, notes=notes)


def _patch(row_id=None, content_key="Tashkent City Tour", notes="From cache", at=datetime(2025, 9, 1, 12)):
    return CachedPatch(booking_id=5, row_id=row_id, content_key=content_key, notes=notes, updated_at=at)


def test_authoritative_text_is_never_replaced():
    row = _row(1, notes="Edited in the office")

    merged = apply_patch(row, _patch(1, notes="Older cached text"))

    assert merged.notes == "Edited in the office"


def test_empty_row_is_repaired_from_matching_patch():
    merged = apply_patch(_row(1), _patch(1))

    assert merged.notes == "From cache"


def test_patch_for_renamed_row_is_stale():
    merged = apply_patch(_row(1, name="Samarkand City Tour"), _patch(1, content_key="Tashkent City Tour"))

    assert merged.notes == ""


def test_missing_or_blank_patch_leaves_row_alone():
    row = _row(1)

    assert apply_patch(row, None) is row
    assert apply_patch(row, _patch(1, notes="")).notes == ""


def test_merge_overrides_matches_patches_by_row_id():
    rows = [_row(1), _row(2, notes="Kept"), ScheduleRow(booking_id=5, date=date(2025, 9, 23))]
    patches = patches_by_row([_patch(1, notes="One"), _patch(2, notes="Two"), _patch(None, notes="Keyed only")])

    merged = merge_overrides(rows, patches)

    assert [r.notes for r in merged] == ["One", "Kept", ""]
    # inputs are not mutated
    assert rows[0].notes == ""


def test_latest_patch_wins_per_row_and_per_content_key():
    older = _patch(1, notes="Old", at=datetime(2025, 9, 1))
    newer = _patch(1, notes="New", at=datetime(2025, 9, 2))

    assert patches_by_row([newer, older])[1].notes == "New"
    assert notes_by_content_key([older, newer, _patch(3, content_key="", notes="ignored")]) == {
        "Tashkent City Tour": "New"
    }


def test_patch_timestamps_are_utc_aware():
    fresh = CachedPatch(booking_id=5, row_id=1, notes="Now")
    legacy = _patch(1, notes="Naive")

    assert fresh.updated_at.tzinfo is not None
    assert legacy.updated_at.tzinfo is not None
    assert patches_by_row([legacy, fresh])[1].notes == "Now"
