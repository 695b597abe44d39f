"""PAX tiers used to look up group pricing."""
from __future__ import annotations

from typing import Dict, List

from backoffice.schemas import PricingTier

# Evaluated top to bottom, first match wins.  ``size`` is the headcount the
# tier's group costs are divided by: a 7-person group in tier "6-7" divides by
# 6.
PAX_TIERS: List[PricingTier] = [
    PricingTier(tier_id="4", label="4 PAX", size=4, min_pax=0, max_pax=4),
    PricingTier(tier_id="5", label="5 PAX", size=5, min_pax=5, max_pax=5),
    PricingTier(tier_id="6-7", label="6-7 PAX", size=6, min_pax=6, max_pax=7),
    PricingTier(tier_id="8-9", label="8-9 PAX", size=8, min_pax=8, max_pax=9),
    PricingTier(tier_id="10-11", label="10-11 PAX", size=10, min_pax=10, max_pax=11),
    PricingTier(tier_id="12-13", label="12-13 PAX", size=12, min_pax=12, max_pax=13),
    PricingTier(tier_id="14-15", label="14-15 PAX", size=14, min_pax=14, max_pax=15),
    PricingTier(tier_id="16", label="16 PAX", size=16, min_pax=16, max_pax=None),
]

_BY_ID: Dict[str, PricingTier] = {tier.tier_id: tier for tier in PAX_TIERS}


def resolve_tier(headcount: int) -> PricingTier:
    for tier in PAX_TIERS:
        if tier.contains(headcount):
            return tier
    # negative headcounts only; treat like the smallest tier
    return PAX_TIERS[0]


def tier_by_id(tier_id: str) -> PricingTier:
    try:
        return _BY_ID[tier_id]
    except KeyError:
        raise ValueError(f"Unknown PAX tier {tier_id!r}") from None
