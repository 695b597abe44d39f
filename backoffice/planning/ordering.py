"""Display ordering for a booking's schedule rows.

Transport legs are classified from their name text alone; the stored city
field has proven unreliable.  Matching rules are data (an ordered table of
predicate/category pairs) so they can be tested and swapped independently
of the sort.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Sequence, Tuple

from backoffice.config import DEFAULT_HOME_BASE
from backoffice.schemas import DisplayCategory, ScheduleRow

Predicate = Callable[[str], bool]
Rule = Tuple[Predicate, DisplayCategory]

CATEGORY_RANK = {"first": 1, "middle": 2, "last": 3}

AIRPORT_MARKERS: Tuple[str, ...] = ("aeroport", "aeroporti", "airport", "flughafen")
EARLY_MARKERS: Tuple[str, ...] = ("vokzal", "chimgan")
# Cities a leg can name; naming any but the home base makes the leg `middle`.
AWAY_CITIES: Tuple[str, ...] = (
    "tashkent",
    "samarkand",
    "bukhara",
    "khiva",
    "urgench",
    "nukus",
    "fergana",
    "termez",
    "shakhrisabz",
)
CITY_TOUR = "city tour"


def contains_any(markers: Sequence[str]) -> Predicate:
    lowered = tuple(m.lower() for m in markers)
    return lambda name: any(m in name for m in lowered)


def home_city_tour(home_base: str) -> Predicate:
    """A city tour with no other city named before it ("City Tour", "Tashkent City Tour")."""
    home = home_base.lower()

    def predicate(name: str) -> bool:
        idx = name.find(CITY_TOUR)
        if idx < 0:
            return False
        prefix = name[:idx].strip(" -")
        return not prefix or prefix == home
    return predicate


def default_rules(home_base: str = DEFAULT_HOME_BASE, away_cities: Sequence[str] = AWAY_CITIES) -> List[Rule]:
    away = [city for city in away_cities if city.lower() != home_base.lower()]
    return [
        (contains_any(away), "middle"),
        (contains_any(AIRPORT_MARKERS), "last"),
        (contains_any(EARLY_MARKERS), "first"),
        (home_city_tour(home_base), "first"),
    ]


@dataclass
class Classifier:
    """First matching rule wins; names matching nothing are ``middle``."""

    rules: List[Rule] = field(default_factory=default_rules)
    fallback: DisplayCategory = "middle"

    def classify(self, name: str | None) -> DisplayCategory:
        lowered = (name or "").lower()
        for predicate, category in self.rules:
            if predicate(lowered):
                return category
        return self.fallback


def display_key(row: ScheduleRow, classifier: Classifier) -> tuple:
    rank = CATEGORY_RANK[classifier.classify(row.name)]
    return (rank, row.date, row.id is None, row.id or 0)


def order_transport(rows: Iterable[ScheduleRow], classifier: Classifier | None = None) -> List[ScheduleRow]:
    """Sort legs by (category rank, date, row id).

    The id tie-break keeps same-date legs (an arrival transfer and a city tour
    on the same day) in a reproducible order regardless of creation order.
    """
    classifier = classifier or Classifier()
    return sorted(rows, key=lambda r: display_key(r, classifier))


def order_stays(rows: Iterable[ScheduleRow]) -> List[ScheduleRow]:
    return sorted(rows, key=lambda r: (r.date, r.id is None, r.id or 0))
