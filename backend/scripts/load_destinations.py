"""Load destinations (and optionally airports) from JSON files into the database.

Usage:
    python -m scripts.load_destinations --destinations data/destinations.json [--filter-valid]
    python -m scripts.load_destinations --airports data/airports.json

Destination files hold a list of Nominatim-style records (`place_id` or `id`,
`name`, `display_name`, `category`, `type`, `lat`, `lon`, `importance`,
`place_rank`, ...). Records are upserted by id, so re-running is safe.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List

from db import SessionLocal, init_db
from domain.models import Airport, Destination
from repositories import AirportsRepository, DestinationsRepository
from services.location_utils import (
    InvalidDestinationRecord,
    filter_valid_destinations,
    transform_destination_record,
)

logger = logging.getLogger("load_destinations")


def _read_records(path: Path) -> list:
    with path.open(encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("destinations") or payload.get("airports") or []
    if not isinstance(payload, list):
        raise SystemExit(f"{path} does not contain a list of records")
    return payload


def load_destinations(path: Path, filter_valid: bool = False) -> int:
    records = _read_records(path)
    if filter_valid:
        records = filter_valid_destinations(records)
    destinations: List[Destination] = []
    for index, record in enumerate(records):
        try:
            destinations.append(transform_destination_record(record))
        except InvalidDestinationRecord:
            logger.warning("Skipping invalid destination record #%d", index)
    with SessionLocal() as session:
        saved = DestinationsRepository().upsert_destinations(session, destinations)
    return len(saved)


def load_airports(path: Path) -> int:
    airports = [
        Airport(
            id=str(r["id"]),
            name=r["name"],
            city=r.get("city"),
            country_name=r.get("country_name"),
            iata_code=r.get("iata_code"),
            latitude=r.get("latitude"),
            longitude=r.get("longitude"),
        )
        for r in _read_records(path)
    ]
    with SessionLocal() as session:
        return AirportsRepository().add_airports(session, airports)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Load destination / airport JSON into the database.")
    parser.add_argument("--destinations", type=Path, default=None, help="JSON file of destination records.")
    parser.add_argument("--airports", type=Path, default=None, help="JSON file of airport records.")
    parser.add_argument(
        "--filter-valid",
        action="store_true",
        help="Drop records that are not travel destinations (museums, low importance, ...).",
    )
    args = parser.parse_args()
    if not args.destinations and not args.airports:
        parser.error("pass --destinations and/or --airports")

    init_db()
    if args.destinations:
        count = load_destinations(args.destinations, filter_valid=args.filter_valid)
        logger.info("Loaded %d destinations from %s", count, args.destinations)
    if args.airports:
        count = load_airports(args.airports)
        logger.info("Loaded %d airports from %s", count, args.airports)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
