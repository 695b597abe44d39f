"""JSON-file implementations of the secondary caches.

Layout under the cache directory::

    patches/<booking_id>.json   list of CachedPatch records
    prices/<TOUR_TYPE>.json     {tier_id: {"total_price": ..., "single_room_surcharge": ...}}

Any read or write problem surfaces as :class:`CacheUnavailable`; callers
treat it as best effort.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

from backoffice.errors import CacheUnavailable
from backoffice.schemas import CachedPatch, TotalPriceEntry
from backoffice.tools.stores import TotalPriceTable


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise CacheUnavailable(f"Cannot read cache file {path}: {exc}") from exc


def _write_json(path: Path, payload: Any) -> None:
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        tmp.replace(path)
    except OSError as exc:
        raise CacheUnavailable(f"Cannot write cache file {path}: {exc}") from exc


class FileOverrideCache:
    def __init__(self, cache_dir: str | Path):
        self.root = Path(cache_dir) / "patches"

    def _path(self, booking_id: int) -> Path:
        return self.root / f"{booking_id}.json"

    def _load(self, booking_id: int) -> List[CachedPatch]:
        raw = _read_json(self._path(booking_id), [])
        try:
            return [CachedPatch.model_validate(item) for item in raw]
        except (TypeError, ValueError) as exc:
            raise CacheUnavailable(f"Corrupt override cache for booking {booking_id}: {exc}") from exc

    def _store(self, booking_id: int, patches: List[CachedPatch]) -> None:
        _write_json(self._path(booking_id), [p.model_dump(mode="json") for p in patches])

    async def list_patches(self, booking_id: int) -> List[CachedPatch]:
        return self._load(booking_id)

    async def put_patch(self, patch: CachedPatch) -> None:
        patches = self._load(patch.booking_id)
        if patch.row_id is not None:
            patches = [p for p in patches if p.row_id != patch.row_id]
        else:
            patches = [p for p in patches if p.row_id is not None or p.content_key != patch.content_key]
        patches.append(patch)
        self._store(patch.booking_id, patches)

    async def delete_patch(self, booking_id: int, row_id: int) -> None:
        patches = self._load(booking_id)
        remaining = [p for p in patches if p.row_id != row_id]
        if len(remaining) != len(patches):
            self._store(booking_id, remaining)


class FilePriceSnapshotCache:
    def __init__(self, cache_dir: str | Path):
        self.root = Path(cache_dir) / "prices"

    def _path(self, tour_type_code: str) -> Path:
        return self.root / f"{tour_type_code.upper()}.json"

    async def get_snapshot(self, tour_type_code: str) -> TotalPriceTable:
        raw = _read_json(self._path(tour_type_code), {})
        try:
            return {str(tier_id): TotalPriceEntry.model_validate(entry) for tier_id, entry in raw.items()}
        except (AttributeError, TypeError, ValueError) as exc:
            raise CacheUnavailable(f"Corrupt price snapshot for {tour_type_code}: {exc}") from exc

    async def put_snapshot(self, tour_type_code: str, table: TotalPriceTable) -> None:
        _write_json(
            self._path(tour_type_code),
            {tier_id: entry.model_dump() for tier_id, entry in table.items()},
        )
