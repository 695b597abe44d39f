"""REST adapter for the existing back-office API.

One :class:`BackofficeApiClient` serves the roster, booking, template and
pricing contracts.  Payloads use the API's camelCase names; the schema
aliases take care of reading them back.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from backoffice.errors import AuthoritativeStoreError, AuthoritativeWriteFailed, BookingNotFound
from backoffice.logs import get_logger
from backoffice.schemas import (
    Booking,
    CostLineItem,
    MasterTemplate,
    RosterMember,
    ScheduleKind,
    ScheduleRow,
    TemplateEntry,
    TotalPriceEntry,
)
from backoffice.tools.stores import TotalPriceTable

logger = get_logger(__name__)

# Collection names per schedule kind on the REST side.
_COLLECTION = {"transport": "routes", "hotel": "accommodations"}
_SINGULAR = {"transport": "route", "hotel": "accommodation"}


class BackofficeApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        api_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json", "User-Agent": "backoffice-engine/1.0"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get(self, path: str, *, missing_ok: bool = False) -> Optional[Dict[str, Any]]:
        try:
            async with self._client() as client:
                response = await client.get(path)
                if missing_ok and response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise AuthoritativeStoreError(
                f"GET {path} failed with status {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthoritativeStoreError(f"GET {path} failed: {exc}") from exc

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=payload)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            raise AuthoritativeWriteFailed(
                f"{method} {path} failed with status {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthoritativeWriteFailed(f"{method} {path} failed: {exc}") from exc

    # ---- RosterStore ----
    async def get_roster(self, booking_id: int) -> List[RosterMember]:
        data = await self._get(f"/bookings/{booking_id}/tourists") or {}
        return [_validate(RosterMember, item) for item in data.get("tourists", [])]

    # ---- BookingStore ----
    async def get_booking(self, booking_id: int) -> Booking:
        data = await self._get(f"/bookings/{booking_id}", missing_ok=True)
        if data is None:
            raise BookingNotFound(booking_id)
        return _validate(Booking, data.get("booking", data))

    async def list_schedule_rows(self, booking_id: int, kind: ScheduleKind) -> List[ScheduleRow]:
        collection = _COLLECTION[kind]
        data = await self._get(f"/bookings/{booking_id}/{collection}") or {}
        rows: List[ScheduleRow] = []
        for item in data.get(collection, []):
            if not (item.get("date") or item.get("checkInDate")):
                logger.warning("Skipping undated %s row %s of booking %s", kind, item.get("id"), booking_id)
                continue
            rows.append(_validate(ScheduleRow, {**item, "bookingId": booking_id, "kind": kind}))
        return rows

    async def create_schedule_row(self, row: ScheduleRow) -> ScheduleRow:
        data = await self._send("POST", f"/bookings/{row.booking_id}/{_COLLECTION[row.kind]}", row_payload(row))
        created = data.get(_SINGULAR[row.kind]) or {}
        if created.get("id") is None:
            raise AuthoritativeWriteFailed(
                f"POST {_COLLECTION[row.kind]} for booking {row.booking_id} returned no row id"
            )
        return row.model_copy(update={"id": created["id"]})

    async def update_schedule_row(self, row: ScheduleRow) -> ScheduleRow:
        path = f"/bookings/{row.booking_id}/{_COLLECTION[row.kind]}/{row.id}"
        await self._send("PUT", path, row_payload(row))
        return row

    async def delete_schedule_row(self, booking_id: int, kind: ScheduleKind, row_id: int) -> None:
        await self._send("DELETE", f"/bookings/{booking_id}/{_COLLECTION[kind]}/{row_id}")

    # ---- TemplateStore ----
    async def get_master_template(self, tour_type_code: str, kind: ScheduleKind) -> Optional[MasterTemplate]:
        code = tour_type_code.upper()
        data = await self._get(f"/{_COLLECTION[kind]}/templates/{code}", missing_ok=True)
        if not data or not data.get("templates"):
            return None
        return MasterTemplate(
            tour_type_code=code,
            kind=kind,
            segment_offset_days=data.get("segmentOffsetDays") or 0,
            entries=[_validate(TemplateEntry, item) for item in data["templates"]],
        )

    async def save_master_template(self, template: MasterTemplate) -> MasterTemplate:
        code = template.tour_type_code.upper()
        payload: Dict[str, Any] = {
            _COLLECTION[template.kind]: [entry_payload(e, template.kind) for e in template.entries],
        }
        if template.kind == "hotel":
            payload["segmentOffsetDays"] = template.segment_offset_days
        await self._send("PUT", f"/{_COLLECTION[template.kind]}/templates/{code}", payload)
        return template

    # ---- PricingStore ----
    async def get_total_price_table(self, tour_type_code: str) -> TotalPriceTable:
        data = await self._get(f"/prices/{tour_type_code.upper()}/total", missing_ok=True) or {}
        raw = data.get("prices", data)
        return {str(tier_id): _validate(TotalPriceEntry, entry) for tier_id, entry in raw.items() if entry}

    async def get_category_line_items(self, tour_type_code: str, tier_id: str, category: str) -> List[CostLineItem]:
        path = f"/prices/{tour_type_code.upper()}/{category}/{tier_id}"
        data = await self._get(path, missing_ok=True) or {}
        return [_validate(CostLineItem, {**item, "category": category}) for item in data.get("items", [])]

    async def get_commission_table(self, tour_type_code: str) -> Dict[str, float]:
        data = await self._get(f"/prices/{tour_type_code.upper()}/commission", missing_ok=True) or {}
        raw = data.get("commission", data)
        return {str(tier_id): float(rate or 0) for tier_id, rate in raw.items()}


def row_payload(row: ScheduleRow) -> Dict[str, Any]:
    if row.kind == "hotel":
        return {
            "dayNumber": row.day_number,
            "checkInDate": row.date.isoformat(),
            "checkOutDate": row.check_out_date.isoformat() if row.check_out_date else None,
            "hotelName": row.name,
            "city": row.city,
            "notes": row.notes,
            "provider": row.provider,
        }
    return {
        "dayNumber": row.day_number,
        "date": row.date.isoformat(),
        "routeName": row.name,
        "city": row.city,
        "itinerary": row.notes,
        "provider": row.provider,
        "personCount": row.party_count_override or 0,
    }


def entry_payload(entry: TemplateEntry, kind: ScheduleKind) -> Dict[str, Any]:
    if kind == "hotel":
        return {
            "dayNumber": entry.day_number,
            "checkInOffset": entry.offset_days,
            "nights": entry.nights,
            "hotelName": entry.name,
            "city": entry.city,
            "notes": entry.notes,
            "provider": entry.provider,
        }
    return {
        "dayNumber": entry.day_number,
        "dayOffset": entry.offset_days,
        "routeName": entry.name,
        "city": entry.city,
        "itinerary": entry.notes,
        "provider": entry.provider,
    }


def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise AuthoritativeStoreError(f"Unexpected {model.__name__} payload: {exc}") from exc
