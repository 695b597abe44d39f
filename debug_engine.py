# debug_engine.py
import asyncio
import json

from backoffice.engine import ItineraryEngine
from backoffice.schemas import Booking, CostLineItem, MasterTemplate, RosterMember, TemplateEntry
from backoffice.tools.memory_store import InMemoryBackoffice, InMemoryOverrideCache, InMemoryPriceSnapshotCache


def seed() -> InMemoryBackoffice:
    backoffice = InMemoryBackoffice()
    backoffice.add_booking(
        Booking.model_validate(
            {"id": 1, "tourTypeCode": {"code": "ER"}, "departureDate": "2025-09-22T00:00:00.000Z",
             "endDate": "2025-10-04T00:00:00.000Z", "pax": 6}
        ),
        roster=[
            RosterMember(id=1, check_in_date="2025-09-22", check_out_date="2025-09-26", room_preference="DZ"),
            RosterMember(id=2, check_in_date="2025-09-22", check_out_date="2025-09-26", room_preference="DZ"),
            RosterMember(id=3, check_in_date="2025-09-21", check_out_date="2025-09-26", room_preference="EZ"),
            RosterMember(id=4, check_in_date="2025-09-22", check_out_date="2025-09-26", room_preference="TWN"),
            RosterMember(id=5, check_in_date="2025-09-22", check_out_date="2025-09-26", room_preference="TWN"),
            RosterMember(id=6, room_preference="DBL"),
        ],
    )
    backoffice.templates[("ER", "transport")] = MasterTemplate(
        tour_type_code="ER",
        kind="transport",
        entries=[
            TemplateEntry(day_number=1, offset_days=0, name="Mahalliy Aeroport-Hotel", city="Tashkent"),
            TemplateEntry(day_number=1, offset_days=0, name="Tashkent City Tour", city="Tashkent"),
            TemplateEntry(day_number=2, offset_days=1, name="Hotel-Vokzal", city="Tashkent"),
            TemplateEntry(day_number=3, offset_days=2, name="Samarkand City Tour", city="Samarkand"),
            TemplateEntry(day_number=4, offset_days=3, name="Khiva - Urgench", city="Khiva"),
            TemplateEntry(day_number=5, offset_days=4, name="Hotel- Xalqaro Aeroport", city="Tashkent"),
        ],
    )
    backoffice.templates[("ER", "hotel")] = MasterTemplate(
        tour_type_code="ER",
        kind="hotel",
        entries=[
            TemplateEntry(day_number=1, offset_days=0, name="Hotel Uzbekistan", city="Tashkent", nights=2),
            TemplateEntry(day_number=3, offset_days=2, name="Hotel Bibi Khanum", city="Samarkand", nights=2),
        ],
    )
    backoffice.set_line_items("ER", "6-7", "hotels", [CostLineItem(unit_price=100, unit_count=2, single_room_price=80)])
    backoffice.set_line_items("ER", "6-7", "transport", [CostLineItem(unit_price=300, unit_count=1)])
    backoffice.set_line_items("ER", "6-7", "meal", [CostLineItem(unit_price=15, unit_count=4)])
    backoffice.set_commission("ER", {"6-7": 10})
    return backoffice


async def main():
    backoffice = seed()
    engine = ItineraryEngine(
        bookings=backoffice,
        rosters=backoffice,
        templates=backoffice,
        pricing=backoffice,
        overrides=InMemoryOverrideCache(),
        snapshots=InMemoryPriceSnapshotCache(),
    )

    transport = await engine.resolve_schedule(1, "transport")
    hotels = await engine.resolve_schedule(1, "hotel")
    price = await engine.resolve_price(1)
    rooms = await engine.room_breakdown(1)

    result = {
        "transport": [row.model_dump(mode="json") for row in transport],
        "hotel": [row.model_dump(mode="json") for row in hotels],
        "price": price.model_dump(mode="json"),
        "rooms": rooms.model_dump(mode="json"),
    }
    print("Engine returned:\n")
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
