from datetime import date
from typing import List

import pytest

from backoffice.engine import ItineraryEngine
from backoffice.errors import CacheUnavailable
from backoffice.schemas import Booking, MasterTemplate, RosterMember, TemplateEntry
from backoffice.tools.memory_store import InMemoryBackoffice, InMemoryOverrideCache, InMemoryPriceSnapshotCache


class BrokenCache:
    """Override/snapshot cache whose every call fails."""

    async def list_patches(self, booking_id):
        raise CacheUnavailable("cache offline")

    async def put_patch(self, patch):
        raise CacheUnavailable("cache offline")

    async def delete_patch(self, booking_id, row_id):
        raise CacheUnavailable("cache offline")

    async def get_snapshot(self, tour_type_code):
        raise CacheUnavailable("cache offline")

    async def put_snapshot(self, tour_type_code, table):
        raise CacheUnavailable("cache offline")


def roster(*dates) -> List[RosterMember]:
    return [
        RosterMember(id=idx + 1, check_in_date=check_in, check_out_date=check_out)
        for idx, (check_in, check_out) in enumerate(dates)
    ]


def transport_template(code: str = "ER") -> MasterTemplate:
    return MasterTemplate(
        tour_type_code=code,
        kind="transport",
        entries=[
            TemplateEntry(day_number=1, offset_days=0, name="Mahalliy Aeroport-Hotel", city="Tashkent"),
            TemplateEntry(day_number=1, offset_days=0, name="Tashkent City Tour", city="Tashkent",
                          notes="Old town, Khast Imam"),
            TemplateEntry(day_number=2, offset_days=1, name="Samarkand City Tour", city="Samarkand"),
            TemplateEntry(day_number=3, offset_days=2, name="Hotel-Vokzal", city="Tashkent"),
            TemplateEntry(day_number=5, offset_days=4, name="Hotel- Xalqaro Aeroport", city="Tashkent"),
        ],
    )


@pytest.fixture
def backoffice() -> InMemoryBackoffice:
    store = InMemoryBackoffice()
    store.add_booking(
        Booking(id=7, tour_type_code="ER", departure_date=date(2025, 9, 20), end_date=date(2025, 10, 1), pax=4),
        roster=roster(
            (date(2025, 9, 22), date(2025, 9, 24)),
            (date(2025, 9, 24), date(2025, 9, 26)),
        ),
    )
    store.templates[("ER", "transport")] = transport_template()
    return store


@pytest.fixture
def overrides() -> InMemoryOverrideCache:
    return InMemoryOverrideCache()


@pytest.fixture
def snapshots() -> InMemoryPriceSnapshotCache:
    return InMemoryPriceSnapshotCache()


@pytest.fixture
def engine(backoffice, overrides, snapshots) -> ItineraryEngine:
    return ItineraryEngine(
        bookings=backoffice,
        rosters=backoffice,
        templates=backoffice,
        pricing=backoffice,
        overrides=overrides,
        snapshots=snapshots,
    )
