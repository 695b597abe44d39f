"""In-process implementations of the store contracts.

Used when no back-office API URL is configured (local development, the debug
script) and as the fixture backend in tests.
"""
from __future__ import annotations

import itertools
from typing import Dict, List, Optional, Tuple

from backoffice.errors import BookingNotFound, RowNotFound
from backoffice.schemas import (
    Booking,
    CachedPatch,
    CostLineItem,
    MasterTemplate,
    RosterMember,
    ScheduleKind,
    ScheduleRow,
    TotalPriceEntry,
)
from backoffice.tools.stores import TotalPriceTable


class InMemoryBackoffice:
    """Bookings, rosters, templates and price tables held in dictionaries."""

    def __init__(self) -> None:
        self.bookings: Dict[int, Booking] = {}
        self.rosters: Dict[int, List[RosterMember]] = {}
        self.rows: Dict[Tuple[int, str], List[ScheduleRow]] = {}
        self.templates: Dict[Tuple[str, str], MasterTemplate] = {}
        self.total_prices: Dict[str, TotalPriceTable] = {}
        self.line_items: Dict[Tuple[str, str, str], List[CostLineItem]] = {}
        self.commissions: Dict[str, Dict[str, float]] = {}
        self._ids = itertools.count(1)

    # ---- seeding helpers ----
    def add_booking(self, booking: Booking, roster: Optional[List[RosterMember]] = None) -> Booking:
        self.bookings[booking.id] = booking
        self.rosters[booking.id] = list(roster or [])
        return booking

    def set_total_prices(self, tour_type_code: str, table: Dict[str, TotalPriceEntry]) -> None:
        self.total_prices[tour_type_code.upper()] = dict(table)

    def set_line_items(self, tour_type_code: str, tier_id: str, category: str, items: List[CostLineItem]) -> None:
        self.line_items[(tour_type_code.upper(), tier_id, category)] = list(items)

    def set_commission(self, tour_type_code: str, rates: Dict[str, float]) -> None:
        self.commissions[tour_type_code.upper()] = dict(rates)

    # ---- RosterStore ----
    async def get_roster(self, booking_id: int) -> List[RosterMember]:
        return [m.model_copy() for m in self.rosters.get(booking_id, [])]

    # ---- BookingStore ----
    async def get_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking.model_copy()

    async def list_schedule_rows(self, booking_id: int, kind: ScheduleKind) -> List[ScheduleRow]:
        return [r.model_copy() for r in self.rows.get((booking_id, kind), [])]

    async def create_schedule_row(self, row: ScheduleRow) -> ScheduleRow:
        stored = row.model_copy(update={"id": next(self._ids)})
        self.rows.setdefault((row.booking_id, row.kind), []).append(stored)
        return stored.model_copy()

    async def update_schedule_row(self, row: ScheduleRow) -> ScheduleRow:
        bucket = self.rows.get((row.booking_id, row.kind), [])
        for idx, existing in enumerate(bucket):
            if existing.id == row.id:
                bucket[idx] = row.model_copy()
                return row.model_copy()
        raise RowNotFound(row.booking_id, row.id or 0)

    async def delete_schedule_row(self, booking_id: int, kind: ScheduleKind, row_id: int) -> None:
        bucket = self.rows.get((booking_id, kind), [])
        remaining = [r for r in bucket if r.id != row_id]
        if len(remaining) == len(bucket):
            raise RowNotFound(booking_id, row_id)
        self.rows[(booking_id, kind)] = remaining

    # ---- TemplateStore ----
    async def get_master_template(self, tour_type_code: str, kind: ScheduleKind) -> Optional[MasterTemplate]:
        template = self.templates.get((tour_type_code.upper(), kind))
        return template.model_copy(deep=True) if template else None

    async def save_master_template(self, template: MasterTemplate) -> MasterTemplate:
        self.templates[(template.tour_type_code.upper(), template.kind)] = template.model_copy(deep=True)
        return template

    # ---- PricingStore ----
    async def get_total_price_table(self, tour_type_code: str) -> TotalPriceTable:
        return dict(self.total_prices.get(tour_type_code.upper(), {}))

    async def get_category_line_items(self, tour_type_code: str, tier_id: str, category: str) -> List[CostLineItem]:
        return list(self.line_items.get((tour_type_code.upper(), tier_id, category), []))

    async def get_commission_table(self, tour_type_code: str) -> Dict[str, float]:
        return dict(self.commissions.get(tour_type_code.upper(), {}))


class InMemoryOverrideCache:
    def __init__(self) -> None:
        self.patches: Dict[int, List[CachedPatch]] = {}

    async def list_patches(self, booking_id: int) -> List[CachedPatch]:
        return list(self.patches.get(booking_id, []))

    async def put_patch(self, patch: CachedPatch) -> None:
        bucket = [p for p in self.patches.get(patch.booking_id, []) if not _same_slot(p, patch)]
        bucket.append(patch)
        self.patches[patch.booking_id] = bucket

    async def delete_patch(self, booking_id: int, row_id: int) -> None:
        bucket = self.patches.get(booking_id, [])
        self.patches[booking_id] = [p for p in bucket if p.row_id != row_id]


class InMemoryPriceSnapshotCache:
    def __init__(self) -> None:
        self.snapshots: Dict[str, TotalPriceTable] = {}

    async def get_snapshot(self, tour_type_code: str) -> TotalPriceTable:
        return dict(self.snapshots.get(tour_type_code.upper(), {}))

    async def put_snapshot(self, tour_type_code: str, table: TotalPriceTable) -> None:
        self.snapshots[tour_type_code.upper()] = dict(table)


def _same_slot(a: CachedPatch, b: CachedPatch) -> bool:
    if a.row_id is not None or b.row_id is not None:
        return a.row_id == b.row_id
    return a.content_key == b.content_key
