"""Bottom-level price aggregation from itemized per-category costs.

Each category sums ``unit_count x unit_price`` over its line items and then
converts the sum to a per-person figure according to its per-unit semantics:

* ``per_person_shared_pair``   - rooms are quoted per pair of occupants, halve it
* ``per_group_divide_by_tier_size`` - quoted for the whole group, divide by tier size
* ``already_per_person``       - used as is

The eight category figures add up to the base price; commission and the
final total are rounded half-up to whole currency units.
"""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from backoffice.schemas import CostLineItem, PerUnitSemantics, PricingTier, ResolvedPrice

LODGING_CATEGORY = "hotels"

COST_CATEGORIES: Tuple[str, ...] = (
    "hotels",
    "transport",
    "railway",
    "fly",
    "meal",
    "sightseeing",
    "guide",
    "shows",
)

CATEGORY_SEMANTICS: Dict[str, PerUnitSemantics] = {
    "hotels": "per_person_shared_pair",
    "transport": "per_group_divide_by_tier_size",
    "railway": "already_per_person",
    "fly": "already_per_person",
    "meal": "already_per_person",
    "sightseeing": "already_per_person",
    "guide": "per_group_divide_by_tier_size",
    "shows": "already_per_person",
}

_ZERO = Decimal("0")


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), ROUND_HALF_UP))


def semantics_for(item: CostLineItem, category: str | None = None) -> PerUnitSemantics:
    if item.per_unit_semantics:
        return item.per_unit_semantics
    return CATEGORY_SEMANTICS.get(category or item.category, "already_per_person")


def per_person(raw: Decimal, semantics: PerUnitSemantics, tier: PricingTier) -> Decimal:
    if semantics == "per_person_shared_pair":
        return raw / 2
    if semantics == "per_group_divide_by_tier_size":
        return raw / tier.size
    return raw


def category_cost(items: Iterable[CostLineItem], category: str, tier: PricingTier) -> Decimal:
    """Per-person cost of one category for ``tier``."""
    raw_by_semantics: Dict[PerUnitSemantics, Decimal] = defaultdict(lambda: _ZERO)
    for item in items:
        raw_by_semantics[semantics_for(item, category)] += _dec(item.unit_count) * _dec(item.unit_price)
    return sum((per_person(raw, sem, tier) for sem, raw in raw_by_semantics.items()), _ZERO)


def single_room_surcharge(lodging: Sequence[CostLineItem]) -> int:
    """Solo-rate lodging cost minus the halved pair rate for the same nights.

    Lodging without any single-room rate quoted has no surcharge.
    """
    if not any(item.single_room_price for item in lodging):
        return 0
    solo = sum((_dec(i.unit_count) * _dec(i.single_room_price) for i in lodging), _ZERO)
    shared = sum((_dec(i.unit_count) * _dec(i.unit_price) for i in lodging), _ZERO) / 2
    return round_half_up(solo - shared)


def aggregate_price(
    tier: PricingTier,
    items_by_category: Mapping[str, Sequence[CostLineItem]],
    commission_rate: float = 0.0,
) -> Optional[ResolvedPrice]:
    """Aggregate line items into a :class:`ResolvedPrice`, or ``None`` when there are none."""
    if not any(items_by_category.get(category) for category in COST_CATEGORIES):
        return None

    base = sum(
        (category_cost(items_by_category.get(category) or [], category, tier) for category in COST_CATEGORIES),
        _ZERO,
    )
    commission = round_half_up(base * _dec(commission_rate) / 100)
    total = round_half_up(base + commission)

    return ResolvedPrice(
        tier_id=tier.tier_id,
        total_price=total,
        single_room_surcharge=single_room_surcharge(items_by_category.get(LODGING_CATEGORY) or []),
    )
