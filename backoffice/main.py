from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.config import load_settings
from backoffice.engine import ItineraryEngine, build_engine
from backoffice.errors import (
    AuthoritativeStoreError,
    BackofficeError,
    BookingNotFound,
    MissingAnchorDates,
    RowNotFound,
)
from backoffice.logs import get_logger
from backoffice.schemas import NotesUpdate, RegenerateRequest, ScheduleKind

logger = get_logger(__name__)

settings = load_settings()

app = FastAPI(title="Tour Back-Office Itinerary API")

# Back-office UIs run on their own origin; scope with BACKOFFICE_ALLOWED_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_engine: Optional[ItineraryEngine] = None


def get_engine() -> ItineraryEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(settings)
    return _engine


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(BookingNotFound)
async def _booking_not_found(request: Request, exc: BookingNotFound) -> JSONResponse:
    return _error(404, exc)


@app.exception_handler(RowNotFound)
async def _row_not_found(request: Request, exc: RowNotFound) -> JSONResponse:
    return _error(404, exc)


@app.exception_handler(MissingAnchorDates)
async def _missing_anchor(request: Request, exc: MissingAnchorDates) -> JSONResponse:
    return _error(409, exc)


@app.exception_handler(AuthoritativeStoreError)
async def _store_failed(request: Request, exc: AuthoritativeStoreError) -> JSONResponse:
    logger.error("Back-office store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(502, exc)


@app.exception_handler(BackofficeError)
async def _backoffice_error(request: Request, exc: BackofficeError) -> JSONResponse:
    return _error(400, exc)


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok"}


@app.get("/api/bookings/{booking_id}/schedule/{kind}")
async def get_schedule(
    booking_id: int,
    kind: ScheduleKind,
    engine: ItineraryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Reconciled, display-ordered schedule; generated from the template when empty."""
    rows = await engine.resolve_schedule(booking_id, kind)
    return {"booking_id": booking_id, "kind": kind, "rows": [row.model_dump(mode="json") for row in rows]}


@app.post("/api/bookings/{booking_id}/schedule/{kind}/regenerate")
async def regenerate_schedule(
    booking_id: int,
    kind: ScheduleKind,
    payload: Optional[RegenerateRequest] = None,
    engine: ItineraryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    reload = payload.reload if payload else False
    rows = await engine.regenerate_from_template(booking_id, kind, reload=reload)
    return {"booking_id": booking_id, "kind": kind, "rows": [row.model_dump(mode="json") for row in rows]}


@app.put("/api/bookings/{booking_id}/schedule/{kind}/{row_id}/notes")
async def update_notes(
    booking_id: int,
    kind: ScheduleKind,
    row_id: int,
    payload: NotesUpdate,
    engine: ItineraryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    row = await engine.save_row_override(booking_id, kind, row_id, payload.text)
    return {"row": row.model_dump(mode="json")}


@app.delete("/api/bookings/{booking_id}/schedule/{kind}/{row_id}")
async def delete_row(
    booking_id: int,
    kind: ScheduleKind,
    row_id: int,
    engine: ItineraryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    await engine.delete_row(booking_id, kind, row_id)
    return {"deleted": row_id}


@app.post("/api/bookings/{booking_id}/schedule/{kind}/save-as-template")
async def save_as_template(
    booking_id: int,
    kind: ScheduleKind,
    engine: ItineraryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    template = await engine.save_schedule_as_template(booking_id, kind)
    return {"template": template.model_dump(mode="json")}


@app.get("/api/bookings/{booking_id}/price")
async def get_price(booking_id: int, engine: ItineraryEngine = Depends(get_engine)) -> Dict[str, Any]:
    price = await engine.resolve_price(booking_id)
    return price.model_dump(mode="json")


@app.get("/api/bookings/{booking_id}/rooms")
async def get_rooms(booking_id: int, engine: ItineraryEngine = Depends(get_engine)) -> Dict[str, Any]:
    summary = await engine.room_breakdown(booking_id)
    return summary.model_dump(mode="json")
