"""Corridor lookup for a load's origin/destination regions.

Matching is exact, case-sensitive equality over the closed REGIONS set:
  1. first active corridor (by id) with origin -> destination as given
  2. otherwise first active BIDIRECTIONAL / ROUND_TRIP corridor with the
     pair reversed
No match is not an error: callers waive fees instead of blocking the trip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from freightfee.models.corridor import Corridor
from freightfee.models.enums import CorridorDirection
from freightfee.repositories import corridor_repo

logger = logging.getLogger(__name__)


REGIONS: tuple[str, ...] = (
    "Addis Ababa",
    "Afar",
    "Amhara",
    "Benishangul-Gumuz",
    "Dire Dawa",
    "Gambela",
    "Harari",
    "Oromia",
    "Sidama",
    "Somali",
    "Southern Nations, Nationalities, and Peoples",
    "Southwest Ethiopia",
    "Tigray",
    # cross-border
    "Djibouti",
)

_REGION_SET = frozenset(REGIONS)

# Used only when a location carries a city but no region.
CITY_REGIONS: dict[str, str] = {
    "Addis Ababa": "Addis Ababa",
    "Adama": "Oromia",
    "Bishoftu": "Oromia",
    "Jimma": "Oromia",
    "Shashemene": "Oromia",
    "Bahir Dar": "Amhara",
    "Gondar": "Amhara",
    "Dessie": "Amhara",
    "Kombolcha": "Amhara",
    "Mekelle": "Tigray",
    "Semera": "Afar",
    "Dire Dawa": "Dire Dawa",
    "Harar": "Harari",
    "Jijiga": "Somali",
    "Hawassa": "Sidama",
    "Gambela": "Gambela",
    "Assosa": "Benishangul-Gumuz",
    "Bonga": "Southwest Ethiopia",
    "Arba Minch": "Southern Nations, Nationalities, and Peoples",
    "Djibouti": "Djibouti",
}

_REVERSIBLE_DIRECTIONS = (CorridorDirection.BIDIRECTIONAL.value, CorridorDirection.ROUND_TRIP.value)


@dataclass
class CorridorMatch:
    corridor: Corridor
    match_type: str  # exact | reverse


def is_known_region(value: str | None) -> bool:
    return bool(value) and value in _REGION_SET


def validate_region(value: str) -> str:
    if not is_known_region(value):
        raise ValueError(f"Unknown region: {value!r}")
    return value


def validate_direction(value: str) -> str:
    try:
        return CorridorDirection(value).value
    except ValueError as exc:
        raise ValueError(f"Unknown corridor direction: {value!r}") from exc


def region_for_city(city: str | None) -> str | None:
    if not city:
        return None
    return CITY_REGIONS.get(city, city)


def resolve_load_regions(load: Any) -> tuple[str | None, str | None]:
    """Explicit region first, then the region derived from the city."""
    origin = getattr(load, "pickup_region", None) or region_for_city(getattr(load, "pickup_city", None))
    destination = getattr(load, "delivery_region", None) or region_for_city(getattr(load, "delivery_city", None))
    return origin, destination


def find_matching_corridor(
    db: Session,
    origin_region: str | None,
    destination_region: str | None,
) -> CorridorMatch | None:
    if not is_known_region(origin_region) or not is_known_region(destination_region):
        logger.debug(
            "corridor_match: skipped unknown region origin=%r destination=%r",
            origin_region, destination_region,
        )
        return None

    corridor = corridor_repo.first_active_corridor(db, origin_region, destination_region)
    if corridor is not None:
        return CorridorMatch(corridor=corridor, match_type="exact")

    corridor = corridor_repo.first_active_corridor(
        db,
        destination_region,
        origin_region,
        directions=_REVERSIBLE_DIRECTIONS,
    )
    if corridor is not None:
        return CorridorMatch(corridor=corridor, match_type="reverse")

    logger.info("corridor_match: none origin=%s destination=%s", origin_region, destination_region)
    return None


def match_corridor_for_load(db: Session, load: Any) -> CorridorMatch | None:
    origin, destination = resolve_load_regions(load)
    if not origin or not destination:
        return None
    return find_matching_corridor(db, origin, destination)
