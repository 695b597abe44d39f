# backoffice/engine.py
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from backoffice.config import Settings, load_settings
from backoffice.errors import (
    AuthoritativeStoreError,
    BackofficeError,
    CacheUnavailable,
    MissingAnchorDates,
    NoPricingDataAvailable,
    RowNotFound,
    TemplateNotFound,
)
from backoffice.logs import get_logger
from backoffice.planning.anchor import resolve_anchor
from backoffice.planning.ordering import Classifier, default_rules, order_stays, order_transport
from backoffice.planning.reconciler import merge_overrides, notes_by_content_key, patches_by_row
from backoffice.planning.template_expander import empty_rows, expand_template, template_from_schedule
from backoffice.pricing.rooms import count_early_arrival_nights, count_single_preferences, room_breakdown
from backoffice.pricing.sources import (
    AggregatedPriceSource,
    PriceSource,
    SnapshotPriceSource,
    TotalPriceTableSource,
    first_resolved,
)
from backoffice.pricing.tiers import resolve_tier
from backoffice.schemas import (
    Anchor,
    Booking,
    CachedPatch,
    MasterTemplate,
    ResolvedPrice,
    RoomingSummary,
    ScheduleKind,
    ScheduleRow,
    TemplateEntry,
)
from backoffice.tools.http_store import BackofficeApiClient
from backoffice.tools.memory_store import InMemoryBackoffice, InMemoryOverrideCache, InMemoryPriceSnapshotCache
from backoffice.tools.override_cache import FileOverrideCache, FilePriceSnapshotCache
from backoffice.tools.stores import (
    BookingStore,
    OverrideCache,
    PriceSnapshotCache,
    PricingStore,
    RosterStore,
    TemplateStore,
)

logger = get_logger(__name__)


class ItineraryEngine:
    """Schedule generation, override reconciliation, ordering and pricing for bookings.

    Writes go to the authoritative stores first; the override cache and the
    price snapshot cache are kept best effort and never fail an operation.
    """

    def __init__(
        self,
        *,
        bookings: BookingStore,
        rosters: RosterStore,
        templates: TemplateStore,
        pricing: PricingStore,
        overrides: OverrideCache,
        snapshots: PriceSnapshotCache,
        classifier: Optional[Classifier] = None,
        write_through_tour_types: Iterable[str] = ("ER",),
        price_sources: Optional[Sequence[PriceSource]] = None,
    ):
        self.bookings = bookings
        self.rosters = rosters
        self.templates = templates
        self.pricing = pricing
        self.overrides = overrides
        self.snapshots = snapshots
        self.classifier = classifier or Classifier()
        self.write_through_tour_types = {code.upper() for code in write_through_tour_types}
        self.price_sources: Sequence[PriceSource] = price_sources or [
            TotalPriceTableSource(pricing, snapshots),
            SnapshotPriceSource(snapshots),
            AggregatedPriceSource(pricing),
        ]

    # ---------- schedule ----------
    async def resolve_schedule(
        self,
        booking_id: int,
        kind: ScheduleKind,
        generate_missing: bool = True,
    ) -> List[ScheduleRow]:
        """Reconciled, display-ordered rows; an empty schedule is generated first."""
        booking = await self.bookings.get_booking(booking_id)
        rows = await self.bookings.list_schedule_rows(booking_id, kind)
        if not rows and generate_missing:
            return await self._generate(booking, kind, rows, reload=False)
        patches = await self._cached_patches(booking_id)
        return self._present(rows, patches, kind)

    async def regenerate_from_template(
        self,
        booking_id: int,
        kind: ScheduleKind,
        reload: bool = False,
    ) -> List[ScheduleRow]:
        """Expand the tour type's template into rows for this booking.

        Without ``reload`` this is a no-op when rows already exist.  With
        ``reload`` existing rows are replaced, but only once the anchor and
        template are known to be usable.
        """
        booking = await self.bookings.get_booking(booking_id)
        existing = await self.bookings.list_schedule_rows(booking_id, kind)
        return await self._generate(booking, kind, existing, reload=reload)

    async def _generate(
        self,
        booking: Booking,
        kind: ScheduleKind,
        existing: List[ScheduleRow],
        *,
        reload: bool,
    ) -> List[ScheduleRow]:
        patches = await self._cached_patches(booking.id)
        if existing and not reload:
            logger.info("Booking %s already has %d %s rows; nothing to generate", booking.id, len(existing), kind)
            return self._present(existing, patches, kind)

        roster = await self.rosters.get_roster(booking.id)
        anchor = resolve_anchor(roster, booking)
        try:
            planned = await self._plan_rows(booking, anchor, kind, notes_by_content_key(patches))
        except MissingAnchorDates as exc:
            logger.info("Deferring %s generation: %s", kind, exc)
            return self._present(existing, patches, kind)
        except TemplateNotFound as exc:
            if existing:
                logger.warning("%s; keeping %d existing rows of booking %s", exc, len(existing), booking.id)
                return self._present(existing, patches, kind)
            logger.info("%s; using blank rows for booking %s", exc, booking.id)
            planned = empty_rows(anchor, booking.id) if kind == "transport" else []

        for row in existing:
            await self.bookings.delete_schedule_row(booking.id, kind, row.id)  # type: ignore[arg-type]
        # one at a time; the back office rejects parallel inserts
        created = [await self.bookings.create_schedule_row(row) for row in planned]
        logger.info(
            "Generated %d %s rows for booking %s (%s, %s..%s)",
            len(created),
            kind,
            booking.id,
            booking.tour_type_code,
            anchor.start,
            anchor.end,
        )
        return self._present(created, patches, kind)

    async def _plan_rows(
        self,
        booking: Booking,
        anchor: Anchor,
        kind: ScheduleKind,
        overrides: Mapping[str, str],
    ) -> List[ScheduleRow]:
        if not anchor.ready:
            raise MissingAnchorDates(f"Booking {booking.id} has no anchor dates yet")
        template = await self.templates.get_master_template(booking.tour_type_code, kind)
        if template is None or not template.entries:
            raise TemplateNotFound(booking.tour_type_code, kind)
        return expand_template(template, anchor, booking.id, overrides)

    def _present(self, rows: Iterable[ScheduleRow], patches: List[CachedPatch], kind: ScheduleKind) -> List[ScheduleRow]:
        merged = merge_overrides(rows, patches_by_row(patches))
        if kind == "transport":
            return order_transport(merged, self.classifier)
        return order_stays(merged)

    async def _cached_patches(self, booking_id: int) -> List[CachedPatch]:
        try:
            return await self.overrides.list_patches(booking_id)
        except CacheUnavailable:
            logger.warning("Override cache unavailable for booking %s; using stored rows only", booking_id, exc_info=True)
            return []

    # ---------- row edits ----------
    async def save_row_override(self, booking_id: int, kind: ScheduleKind, row_id: int, text: str) -> ScheduleRow:
        booking = await self.bookings.get_booking(booking_id)
        row = await self._find_row(booking_id, kind, row_id)

        saved = await self.bookings.update_schedule_row(row.model_copy(update={"notes": text}))
        try:
            await self.overrides.put_patch(
                CachedPatch(booking_id=booking_id, row_id=row_id, content_key=saved.name, notes=text)
            )
        except CacheUnavailable:
            logger.warning("Could not cache notes for row %s of booking %s", row_id, booking_id, exc_info=True)

        if booking.tour_type_code in self.write_through_tour_types:
            await self._write_through(booking, saved)
        return saved

    async def _write_through(self, booking: Booking, row: ScheduleRow) -> None:
        try:
            template = await self.templates.get_master_template(booking.tour_type_code, row.kind)
            if template is None:
                return
            entry = _template_entry_for(template, row)
            if entry is None:
                logger.info("No %s template entry for day %d of %s", row.kind, row.day_number, booking.tour_type_code)
                return
            entry.name = row.name or entry.name
            entry.city = row.city or entry.city
            entry.notes = row.notes or entry.notes
            entry.provider = row.provider or entry.provider
            await self.templates.save_master_template(template)
            logger.info("Updated %s template day %d from booking %s", booking.tour_type_code, row.day_number, booking.id)
        except AuthoritativeStoreError:
            logger.warning("Template write-through failed for %s", booking.tour_type_code, exc_info=True)

    async def delete_row(self, booking_id: int, kind: ScheduleKind, row_id: int) -> None:
        await self.bookings.delete_schedule_row(booking_id, kind, row_id)
        try:
            await self.overrides.delete_patch(booking_id, row_id)
        except CacheUnavailable:
            logger.warning("Could not clear cached notes for row %s of booking %s", row_id, booking_id, exc_info=True)

    async def _find_row(self, booking_id: int, kind: ScheduleKind, row_id: int) -> ScheduleRow:
        for row in await self.bookings.list_schedule_rows(booking_id, kind):
            if row.id == row_id:
                return row
        raise RowNotFound(booking_id, row_id)

    async def save_schedule_as_template(self, booking_id: int, kind: ScheduleKind) -> MasterTemplate:
        """Replace the tour type's master template with this booking's schedule."""
        booking = await self.bookings.get_booking(booking_id)
        rows = await self.resolve_schedule(booking_id, kind, generate_missing=False)
        if not rows:
            raise BackofficeError(f"Booking {booking_id} has no {kind} rows to save as a template")

        roster = await self.rosters.get_roster(booking_id)
        anchor = resolve_anchor(roster, booking)
        segment_offset = 0
        if kind == "hotel":
            current = await self.templates.get_master_template(booking.tour_type_code, kind)
            segment_offset = current.segment_offset_days if current else 0

        template = template_from_schedule(rows, anchor, booking.tour_type_code, kind, segment_offset)
        saved = await self.templates.save_master_template(template)
        logger.info("Saved %d %s entries as %s template", len(saved.entries), kind, booking.tour_type_code)
        return saved

    # ---------- pricing & rooms ----------
    async def resolve_price(self, booking_id: int) -> ResolvedPrice:
        booking = await self.bookings.get_booking(booking_id)
        roster = await self.rosters.get_roster(booking_id)
        tier = resolve_tier(len(roster) or booking.pax)

        price = await first_resolved(self.price_sources, booking, tier)
        if price is None:
            logger.warning("%s; reporting zero price", NoPricingDataAvailable(booking.tour_type_code, tier.tier_id))
            return ResolvedPrice.zero(tier.tier_id)
        return price

    async def room_breakdown(self, booking_id: int) -> RoomingSummary:
        booking = await self.bookings.get_booking(booking_id)
        roster = await self.rosters.get_roster(booking_id)
        return RoomingSummary(
            headcount=len(roster) or booking.pax,
            breakdown=room_breakdown(m.room_preference for m in roster),
            single_preference_count=count_single_preferences(roster),
            extra_nights=count_early_arrival_nights(roster),
        )


def _template_entry_for(template: MasterTemplate, row: ScheduleRow) -> Optional[TemplateEntry]:
    """Entry for the row's day; several entries on one day are told apart by name."""
    same_day = [e for e in template.entries if e.day_number == row.day_number]
    for entry in same_day:
        if entry.name == row.name:
            return entry
    return same_day[0] if len(same_day) == 1 else None


def _rules_for(settings: Settings):
    if settings.away_cities is None:
        return default_rules(settings.home_base)
    return default_rules(settings.home_base, settings.away_cities)


def build_engine(settings: Optional[Settings] = None) -> ItineraryEngine:
    """Wire the engine to the REST back office or to in-memory stores."""
    settings = settings or load_settings()
    if settings.api_url:
        backend = BackofficeApiClient(settings.api_url, api_token=settings.api_token, timeout=settings.http_timeout)
    else:
        logger.info("BACKOFFICE_API_URL not set; using in-memory stores")
        backend = InMemoryBackoffice()

    if settings.cache_dir:
        overrides = FileOverrideCache(settings.cache_dir)
        snapshots = FilePriceSnapshotCache(settings.cache_dir)
    else:
        overrides = InMemoryOverrideCache()
        snapshots = InMemoryPriceSnapshotCache()

    return ItineraryEngine(
        bookings=backend,
        rosters=backend,
        templates=backend,
        pricing=backend,
        overrides=overrides,
        snapshots=snapshots,
        classifier=Classifier(rules=_rules_for(settings)),
        write_through_tour_types=settings.write_through_tour_types,
    )
