"""Merge cached free-text patches into authoritative schedule rows.

The authoritative store is trusted whenever it holds content.  The cache is a
repair source only: it fills notes that a failed save path dropped, and never
replaces non-empty notes.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from backoffice.schemas import CachedPatch, ScheduleRow


def apply_patch(row: ScheduleRow, patch: Optional[CachedPatch]) -> ScheduleRow:
    """Return ``row`` with its notes repaired from ``patch`` when allowed.

    A patch applies only when the row's notes are empty, the patch carries
    text, and the patch was recorded against a row of the same name.  A name
    mismatch means the row was regenerated or renamed since the patch was
    written, so the patch is stale.
    """
    if patch is None or row.notes or not patch.notes:
        return row
    if patch.content_key and patch.content_key != row.name:
        return row
    return row.model_copy(update={"notes": patch.notes})


def merge_overrides(rows: Iterable[ScheduleRow], patches: Mapping[int, CachedPatch]) -> List[ScheduleRow]:
    """Apply :func:`apply_patch` to every row, matching patches by row id."""
    return [apply_patch(row, patches.get(row.id) if row.id is not None else None) for row in rows]


def patches_by_row(patches: Iterable[CachedPatch]) -> Dict[int, CachedPatch]:
    """Index patches by row id, keeping the most recent one per row."""
    indexed: Dict[int, CachedPatch] = {}
    for patch in patches:
        if patch.row_id is None:
            continue
        current = indexed.get(patch.row_id)
        if current is None or patch.updated_at >= current.updated_at:
            indexed[patch.row_id] = patch
    return indexed


def notes_by_content_key(patches: Iterable[CachedPatch]) -> Dict[str, str]:
    """Most recent non-empty notes per content key, for use during expansion."""
    latest: Dict[str, CachedPatch] = {}
    for patch in patches:
        if not patch.content_key or not patch.notes:
            continue
        current = latest.get(patch.content_key)
        if current is None or patch.updated_at >= current.updated_at:
            latest[patch.content_key] = patch
    return {key: patch.notes for key, patch in latest.items()}
