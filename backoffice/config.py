"""Runtime settings read from the environment (and a local ``.env`` file)."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOME_BASE = "tashkent"
DEFAULT_WRITE_THROUGH = "ER"


def _split_csv(raw: Optional[str]) -> List[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


@dataclass
class Settings:
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    http_timeout: float = 10.0
    cache_dir: Optional[str] = None
    home_base: str = DEFAULT_HOME_BASE
    away_cities: Optional[List[str]] = None
    write_through_tour_types: List[str] = field(default_factory=lambda: [DEFAULT_WRITE_THROUGH])
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


def load_settings() -> Settings:
    """Collect ``BACKOFFICE_*`` variables into a :class:`Settings`.

    Unset ``BACKOFFICE_API_URL`` means the in-memory stores are used, and an
    unset ``BACKOFFICE_CACHE_DIR`` keeps the override cache in memory too.
    An unset ``BACKOFFICE_AWAY_CITIES`` keeps the built-in destination list.
    """
    raw_timeout = os.getenv("BACKOFFICE_HTTP_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else 10.0
    except ValueError:
        timeout = 10.0

    write_through_raw = os.getenv("BACKOFFICE_TEMPLATE_WRITE_THROUGH")
    write_through = (
        [code.upper() for code in _split_csv(write_through_raw)]
        if write_through_raw is not None
        else [DEFAULT_WRITE_THROUGH]
    )

    away_raw = os.getenv("BACKOFFICE_AWAY_CITIES")
    away_cities = [city.lower() for city in _split_csv(away_raw)] if away_raw is not None else None

    origins = _split_csv(os.getenv("BACKOFFICE_ALLOWED_ORIGINS") or "*") or ["*"]

    return Settings(
        api_url=os.getenv("BACKOFFICE_API_URL") or None,
        api_token=os.getenv("BACKOFFICE_API_TOKEN") or None,
        http_timeout=timeout,
        cache_dir=os.getenv("BACKOFFICE_CACHE_DIR") or None,
        home_base=(os.getenv("BACKOFFICE_HOME_BASE") or DEFAULT_HOME_BASE).strip().lower(),
        away_cities=away_cities,
        write_through_tour_types=write_through,
        allowed_origins=origins,
    )
