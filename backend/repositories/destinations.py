"""
Destination pool repository backed by SQLAlchemy.
"""
import logging
from typing import Callable, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from domain.models import Destination, MatchTier
from repositories.models import DestinationORM

logger = logging.getLogger(__name__)

_LIKE_ESCAPE = "\\"


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def _tier_clause(tier: MatchTier, query: str):
    name = func.lower(DestinationORM.name)
    alias = func.lower(DestinationORM.name_normalized)
    if tier == MatchTier.EXACT:
        return or_(name == query, alias == query)

    escaped = _escape_like(query)
    if tier == MatchTier.PREFIX:
        pattern = f"{escaped}%"
    else:
        pattern = f"%{escaped}%"
    return or_(
        name.like(pattern, escape=_LIKE_ESCAPE),
        alias.like(pattern, escape=_LIKE_ESCAPE),
    )


def _name_ordering(dialect_name: str):
    # Locale collations (PostgreSQL en_US etc.) do not sort by code point
    name = DestinationORM.name
    if dialect_name == "postgresql":
        name = name.collate("C")
    return func.lower(name), name, DestinationORM.id


def _destination_from_orm(orm: DestinationORM) -> Destination:
    return Destination(
        id=orm.id,
        name=orm.name,
        name_normalized=orm.name_normalized,
        display_name=orm.display_name,
        category=orm.category,
        type=orm.type,
        country=orm.country,
        region=orm.region,
        city=orm.city,
        lat=orm.lat,
        lon=orm.lon,
        importance=orm.importance,
        place_rank=orm.place_rank,
        boundingbox=orm.boundingbox,
    )


def _orm_from_destination(destination: Destination) -> DestinationORM:
    return DestinationORM(**destination.to_dict())


class DestinationsRepository:
    """Read and bulk-write access to the destination pool."""

    def find_by_tier(
        self,
        session: Session,
        tier: MatchTier,
        query: str,
        limit: int,
        category: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> List[Destination]:
        """
        Return destinations matching `query` at the given tier.

        `query` is expected to be normalized already (trimmed, lower-case).
        Results are ordered by name (case-folded, then exact, then id) and
        capped at `limit`.
        """
        q = session.query(DestinationORM).filter(_tier_clause(tier, query))
        if category:
            q = q.filter(DestinationORM.category == category)
        if type_:
            q = q.filter(DestinationORM.type == type_)
        rows = (
            q.order_by(*_name_ordering(session.get_bind().dialect.name))
            .limit(limit)
            .all()
        )
        return [_destination_from_orm(r) for r in rows]

    def find_containing(self, session: Session, query: str, limit: int = 20) -> List[Destination]:
        """Contains-matches on name or name_normalized, most important first."""
        rows = (
            session.query(DestinationORM)
            .filter(_tier_clause(MatchTier.CONTAINS, query))
            .order_by(DestinationORM.importance.desc(), DestinationORM.id)
            .limit(limit)
            .all()
        )
        return [_destination_from_orm(r) for r in rows]

    def upsert_destinations(
        self, session: Session, destinations: Iterable[Destination]
    ) -> List[Destination]:
        """
        Insert or replace destinations keyed by id.

        Duplicate ids in the input collapse to their last occurrence.
        """
        by_id = {}
        for destination in destinations:
            by_id[destination.id] = destination

        for destination in by_id.values():
            session.merge(_orm_from_destination(destination))
        session.commit()
        logger.info("Upserted %d destinations", len(by_id))
        return list(by_id.values())


class SqlDestinationSource:
    """
    Tier fetcher for DestinationSearch backed by the SQL pool.

    Each fetch opens its own session so the three tiers can be read from
    separate threads.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        repository: Optional[DestinationsRepository] = None,
    ):
        self.session_factory = session_factory
        self.repository = repository or DestinationsRepository()

    def fetch_tier(
        self,
        tier: MatchTier,
        query: str,
        limit: int,
        category: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> List[Destination]:
        with self.session_factory() as session:
            return self.repository.find_by_tier(
                session, tier, query, limit, category=category, type_=type_
            )
