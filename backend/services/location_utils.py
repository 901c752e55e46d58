"""
Helpers for destination records coming from Nominatim-style ingestion feeds.
"""
from __future__ import annotations

import functools
import math
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional

from domain.models import Destination

REQUIRED_FIELDS = (
    "id",
    "name",
    "display_name",
    "category",
    "type",
    "lat",
    "lon",
    "importance",
    "place_rank",
)
NUMERIC_FIELDS = {"lat", "lon", "importance"}
BOUNDINGBOX_SIZE = 4

VALID_CATEGORIES = {"tourism", "place"}
VALID_TYPES = {"attraction", "city", "island", "country", "region", "state"}
EXCLUDED_TYPES = {"museum", "monument", "memorial", "statue", "building"}
MIN_IMPORTANCE = 0.1


class InvalidDestinationRecord(ValueError):
    pass


def _parse_float(value: Any) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _parse_int(value: Any) -> Optional[int]:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    return int(parsed)


def _record_id(record: Mapping[str, Any]) -> Any:
    # Ingestion feeds built from Nominatim send place_id rather than id
    value = record.get("id")
    if value is None or value == "":
        value = record.get("place_id")
    return value


def fold_name(name: str) -> str:
    """ASCII-folded lower-case alias of a name, e.g. 'Zürich' -> 'zurich'."""
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.encode("ascii", "ignore").decode("ascii").strip().lower()


def _valid_boundingbox(value: Any) -> bool:
    if value is None:
        return True
    if not isinstance(value, (list, tuple)) or len(value) != BOUNDINGBOX_SIZE:
        return False
    return all(_parse_float(v) is not None for v in value)


def validate_destination_record(record: Mapping[str, Any]) -> bool:
    """Check that a raw record has every required field in a usable form.

    Numbers must be finite and coordinates in range. A boundingbox, when
    present, must hold four numbers.
    """
    if not isinstance(record, Mapping):
        return False
    for field_name in REQUIRED_FIELDS:
        value = _record_id(record) if field_name == "id" else record.get(field_name)
        if field_name in NUMERIC_FIELDS:
            if _parse_float(value) is None:
                return False
        elif field_name == "place_rank":
            if _parse_int(value) is None:
                return False
        elif value is None or value == "":
            return False
    if not validate_coordinates(_parse_float(record["lat"]), _parse_float(record["lon"])):
        return False
    return _valid_boundingbox(record.get("boundingbox"))


def transform_destination_record(record: Mapping[str, Any]) -> Destination:
    """Coerce a raw record into a Destination.

    Raises InvalidDestinationRecord if the record does not validate.
    """
    if not validate_destination_record(record):
        raise InvalidDestinationRecord("Destination record failed validation")
    name = str(record["name"])
    name_normalized = record.get("name_normalized") or fold_name(name) or name.lower()
    return Destination(
        id=str(_record_id(record)),
        name=name,
        name_normalized=str(name_normalized),
        display_name=str(record["display_name"]),
        category=str(record["category"]),
        type=str(record["type"]),
        country=record.get("country") or None,
        region=record.get("region") or None,
        city=record.get("city") or None,
        lat=_parse_float(record["lat"]),
        lon=_parse_float(record["lon"]),
        importance=_parse_float(record["importance"]),
        place_rank=_parse_int(record["place_rank"]),
        boundingbox=[str(v) for v in record["boundingbox"]] if record.get("boundingbox") is not None else None,
    )


def filter_valid_destinations(records: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Keep travel destinations only: cities, regions, islands, attractions."""
    kept = []
    for record in records:
        if record.get("category") not in VALID_CATEGORIES:
            continue
        if record.get("type") not in VALID_TYPES or record.get("type") in EXCLUDED_TYPES:
            continue
        importance = _parse_float(record.get("importance"))
        if importance is None or importance < MIN_IMPORTANCE:
            continue
        kept.append(record)
    return kept


def _relevance_key(destination: Destination):
    return (destination.place_rank, len(destination.name))


def sort_destinations_by_relevance(destinations: Iterable[Destination]) -> List[Destination]:
    """
    Order by importance (descending) when two entries differ by more than
    0.1; closer scores fall back to place_rank (lower first) and then to the
    shorter name.
    """
    def compare(a: Destination, b: Destination) -> int:
        if abs(a.importance - b.importance) > 0.1:
            return -1 if a.importance > b.importance else 1
        ka, kb = _relevance_key(a), _relevance_key(b)
        if ka == kb:
            return 0
        return -1 if ka < kb else 1

    return sorted(destinations, key=functools.cmp_to_key(compare))


def group_destinations_by_country(destinations: Iterable[Destination]) -> Dict[str, List[Destination]]:
    """Bucket destinations by country; missing countries go under "Unknown"."""
    groups: Dict[str, List[Destination]] = {}
    for destination in destinations:
        groups.setdefault(destination.country or "Unknown", []).append(destination)
    return groups


def create_search_display_name(destination: Destination) -> str:
    """'Name, City, Region, Country', skipping parts that repeat the previous one."""
    parts = [destination.name]
    if destination.city and destination.city != destination.name:
        parts.append(destination.city)
    if destination.region and destination.region != destination.city:
        parts.append(destination.region)
    if destination.country:
        parts.append(destination.country)
    return ", ".join(parts)


def validate_coordinates(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180

