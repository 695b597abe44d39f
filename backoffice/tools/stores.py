"""Contracts for the collaborators the engine reads from and writes to.

Authoritative stores raise :class:`~backoffice.errors.AuthoritativeStoreError`
(or its ``AuthoritativeWriteFailed`` subclass) when they cannot serve a call.
Caches raise :class:`~backoffice.errors.CacheUnavailable`; the engine treats
those as best effort.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Protocol

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

TotalPriceTable = Dict[str, TotalPriceEntry]


class RosterStore(Protocol):
    async def get_roster(self, booking_id: int) -> List[RosterMember]: ...


class BookingStore(Protocol):
    async def get_booking(self, booking_id: int) -> Booking: ...

    async def list_schedule_rows(self, booking_id: int, kind: ScheduleKind) -> List[ScheduleRow]: ...

    async def create_schedule_row(self, row: ScheduleRow) -> ScheduleRow: ...

    async def update_schedule_row(self, row: ScheduleRow) -> ScheduleRow: ...

    async def delete_schedule_row(self, booking_id: int, kind: ScheduleKind, row_id: int) -> None: ...


class TemplateStore(Protocol):
    async def get_master_template(self, tour_type_code: str, kind: ScheduleKind) -> Optional[MasterTemplate]: ...

    async def save_master_template(self, template: MasterTemplate) -> MasterTemplate: ...


class PricingStore(Protocol):
    async def get_total_price_table(self, tour_type_code: str) -> TotalPriceTable: ...

    async def get_category_line_items(self, tour_type_code: str, tier_id: str, category: str) -> List[CostLineItem]: ...

    async def get_commission_table(self, tour_type_code: str) -> Dict[str, float]: ...


class OverrideCache(Protocol):
    async def list_patches(self, booking_id: int) -> List[CachedPatch]: ...

    async def put_patch(self, patch: CachedPatch) -> None: ...

    async def delete_patch(self, booking_id: int, row_id: int) -> None: ...


class PriceSnapshotCache(Protocol):
    async def get_snapshot(self, tour_type_code: str) -> TotalPriceTable: ...

    async def put_snapshot(self, tour_type_code: str, table: TotalPriceTable) -> None: ...
