"""
Airport repository backed by SQLAlchemy.
"""
from typing import Iterable, List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from domain.models import Airport
from repositories.destinations import _LIKE_ESCAPE, _escape_like
from repositories.models import AirportORM


def _airport_from_orm(orm: AirportORM) -> Airport:
    return Airport(
        id=orm.id,
        name=orm.name,
        city=orm.city,
        country_name=orm.country_name,
        iata_code=orm.iata_code,
        latitude=orm.latitude,
        longitude=orm.longitude,
    )


class AirportsRepository:
    """Lookup operations for airports."""

    def search(self, session: Session, term: str, limit: int = 10) -> List[Airport]:
        """Case-insensitive contains-match across name, city, country and IATA code."""
        pattern = f"%{_escape_like(term.lower())}%"
        columns = (
            AirportORM.name,
            AirportORM.city,
            AirportORM.country_name,
            AirportORM.iata_code,
        )
        rows = (
            session.query(AirportORM)
            .filter(or_(*[func.lower(c).like(pattern, escape=_LIKE_ESCAPE) for c in columns]))
            .order_by(AirportORM.name, AirportORM.id)
            .limit(limit)
            .all()
        )
        return [_airport_from_orm(r) for r in rows]

    def add_airports(self, session: Session, airports: Iterable[Airport]) -> int:
        count = 0
        for airport in airports:
            session.merge(
                AirportORM(
                    id=airport.id,
                    name=airport.name,
                    city=airport.city,
                    country_name=airport.country_name,
                    iata_code=airport.iata_code,
                    latitude=airport.latitude,
                    longitude=airport.longitude,
                )
            )
            count += 1
        session.commit()
        return count
