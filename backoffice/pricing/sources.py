"""Price sources tried in order until one yields a price."""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence

from backoffice.errors import CacheUnavailable
from backoffice.logs import get_logger
from backoffice.pricing.aggregator import COST_CATEGORIES, aggregate_price
from backoffice.schemas import Booking, PricingTier, ResolvedPrice, TotalPriceEntry
from backoffice.tools.stores import PriceSnapshotCache, PricingStore, TotalPriceTable

logger = get_logger(__name__)


class PriceSource(Protocol):
    name: str

    async def try_resolve(self, booking: Booking, tier: PricingTier) -> Optional[ResolvedPrice]: ...


def _from_entry(tier: PricingTier, entry: Optional[TotalPriceEntry]) -> Optional[ResolvedPrice]:
    if entry is None or not entry.total_price:
        return None
    return ResolvedPrice(
        tier_id=tier.tier_id,
        total_price=entry.total_price,
        single_room_surcharge=entry.single_room_surcharge,
    )


class TotalPriceTableSource:
    """Operator-maintained per-tier totals; refreshes the snapshot cache on every read."""

    name = "total_price_table"

    def __init__(self, pricing: PricingStore, snapshots: Optional[PriceSnapshotCache] = None):
        self.pricing = pricing
        self.snapshots = snapshots

    async def try_resolve(self, booking: Booking, tier: PricingTier) -> Optional[ResolvedPrice]:
        table = await self.pricing.get_total_price_table(booking.tour_type_code)
        if table and self.snapshots is not None:
            await self._refresh_snapshot(booking.tour_type_code, table)
        return _from_entry(tier, table.get(tier.tier_id))

    async def _refresh_snapshot(self, tour_type_code: str, table: TotalPriceTable) -> None:
        try:
            await self.snapshots.put_snapshot(tour_type_code, table)  # type: ignore[union-attr]
        except CacheUnavailable:
            logger.warning("Could not refresh price snapshot for %s", tour_type_code, exc_info=True)


class SnapshotPriceSource:
    name = "snapshot"

    def __init__(self, snapshots: PriceSnapshotCache):
        self.snapshots = snapshots

    async def try_resolve(self, booking: Booking, tier: PricingTier) -> Optional[ResolvedPrice]:
        try:
            table = await self.snapshots.get_snapshot(booking.tour_type_code)
        except CacheUnavailable:
            logger.warning("Price snapshot for %s unavailable", booking.tour_type_code, exc_info=True)
            return None
        return _from_entry(tier, table.get(tier.tier_id))


class AggregatedPriceSource:
    """Itemized per-category costs summed up by :func:`aggregate_price`."""

    name = "aggregated"

    def __init__(self, pricing: PricingStore):
        self.pricing = pricing

    async def try_resolve(self, booking: Booking, tier: PricingTier) -> Optional[ResolvedPrice]:
        code = booking.tour_type_code
        item_lists = await asyncio.gather(
            *(self.pricing.get_category_line_items(code, tier.tier_id, category) for category in COST_CATEGORIES)
        )
        items_by_category = dict(zip(COST_CATEGORIES, item_lists))
        if not any(item_lists):
            return None
        commissions = await self.pricing.get_commission_table(code)
        return aggregate_price(tier, items_by_category, commissions.get(tier.tier_id, 0.0))


async def first_resolved(
    sources: Sequence[PriceSource],
    booking: Booking,
    tier: PricingTier,
) -> Optional[ResolvedPrice]:
    """Return the first non-``None`` price, or ``None`` when every source is empty."""
    for source in sources:
        price = await source.try_resolve(booking, tier)
        if price is not None:
            logger.info(
                "Price for booking %s (%s, tier %s) from %s",
                booking.id,
                booking.tour_type_code,
                tier.tier_id,
                source.name,
            )
            return price
    return None
