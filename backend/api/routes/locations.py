"""
Location search API routes.

GET  /search  ranked destination search
POST /search  bulk upsert into the destination pool (ingestion pipeline)
GET  /debug   raw contains-matches with match details
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from db import SessionLocal
from domain.models import Destination, MatchTier
from repositories import DestinationsRepository, SqlDestinationSource
from services.destination_search import (
    DestinationSearch,
    DestinationSourceError,
    QueryTooShortError,
    normalize_query,
    validate_query,
)
from services.location_utils import (
    InvalidDestinationRecord,
    create_search_display_name,
    filter_valid_destinations,
    group_destinations_by_country,
    sort_destinations_by_relevance,
    transform_destination_record,
)
from settings import settings

router = APIRouter()
destinations_repo = DestinationsRepository()
logger = logging.getLogger(__name__)

DEBUG_RESULT_LIMIT = 20


class DestinationResponse(BaseModel):
    id: str
    name: str
    name_normalized: str
    display_name: str
    category: str
    type: str
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    lat: float
    lon: float
    importance: float
    place_rank: int
    boundingbox: Optional[List[str]] = None


class SearchResponse(BaseModel):
    success: bool = True
    data: List[DestinationResponse]
    count: int


class UpsertResponse(BaseModel):
    success: bool = True
    message: str
    count: int
    skipped: int = 0


class DebugMatch(BaseModel):
    id: str
    name: str
    name_normalized: str
    display_name: str
    search_display_name: str
    category: str
    type: str
    importance: float
    place_rank: int
    name_match: bool
    name_normalized_match: bool
    match_position: int
    tier: Optional[int] = None


class DebugResponse(BaseModel):
    success: bool = True
    query: str
    total_results: int
    results: List[DebugMatch]
    countries: Dict[str, int]
    explanation: str


def destination_to_response(destination: Destination) -> DestinationResponse:
    """Convert domain Destination to API response (priority stays internal)."""
    return DestinationResponse(
        id=destination.id,
        name=destination.name,
        name_normalized=destination.name_normalized,
        display_name=destination.display_name,
        category=destination.category,
        type=destination.type,
        country=destination.country,
        region=destination.region,
        city=destination.city,
        lat=destination.lat,
        lon=destination.lon,
        importance=destination.importance,
        place_rank=destination.place_rank,
        boundingbox=destination.boundingbox,
    )


def _match_tier(destination: Destination, query: str) -> Optional[MatchTier]:
    fields = (destination.name.lower(), destination.name_normalized.lower())
    if query in fields:
        return MatchTier.EXACT
    if any(f.startswith(query) for f in fields):
        return MatchTier.PREFIX
    if any(query in f for f in fields):
        return MatchTier.CONTAINS
    return None


@router.get("/search", response_model=SearchResponse)
async def search_destinations(
    response: Response,
    q: Optional[str] = None,
    limit: int = Query(default=settings.SEARCH_DEFAULT_LIMIT, ge=0, le=settings.SEARCH_MAX_LIMIT),
    category: Optional[str] = None,
    type_: Optional[str] = Query(default=None, alias="type"),
):
    """Rank destinations for `q`: exact, then prefix, then contains matches."""
    try:
        query = validate_query(q, settings.SEARCH_MIN_QUERY_LENGTH)
    except QueryTooShortError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    search = DestinationSearch(SqlDestinationSource(SessionLocal, destinations_repo))
    try:
        results = await search.search(query, limit, category=category, type_=type_)
    except DestinationSourceError as exc:
        logger.error("Location search failed: %s", exc.__cause__ or exc)
        raise HTTPException(status_code=500, detail="Failed to search destinations")

    if settings.SEARCH_CACHE_MAX_AGE > 0:
        response.headers["Cache-Control"] = f"public, max-age={settings.SEARCH_CACHE_MAX_AGE}"
    data = [destination_to_response(d) for d in results]
    return SearchResponse(data=data, count=len(data))


@router.post("/search", response_model=UpsertResponse)
async def upsert_destinations(
    payload: Any = Body(...),
    filter_valid: bool = False,
):
    """Bulk insert/update destinations, keyed by id (place_id accepted)."""
    records = payload.get("destinations") if isinstance(payload, dict) else None
    if not isinstance(records, list):
        raise HTTPException(status_code=400, detail="Destinations must be an array")

    total = len(records)
    if filter_valid:
        records = filter_valid_destinations(r for r in records if isinstance(r, dict))

    destinations: List[Destination] = []
    invalid: List[int] = []
    for index, record in enumerate(records):
        try:
            destinations.append(transform_destination_record(record))
        except InvalidDestinationRecord:
            invalid.append(index)
    if invalid:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid destination records at indices: {invalid}",
        )

    try:
        with SessionLocal() as session:
            saved = destinations_repo.upsert_destinations(session, destinations)
    except SQLAlchemyError:
        logger.exception("Destination upsert failed")
        raise HTTPException(status_code=500, detail="Failed to upsert destinations")

    return UpsertResponse(
        message=f"Successfully processed {len(saved)} destinations",
        count=len(saved),
        skipped=total - len(records),
    )


@router.get("/debug", response_model=DebugResponse)
async def debug_search(q: Optional[str] = None):
    """Show every destination whose name or name_normalized contains `q`."""
    if not q:
        raise HTTPException(status_code=400, detail='Query parameter "q" is required')
    query = normalize_query(q)

    try:
        with SessionLocal() as session:
            matches = destinations_repo.find_containing(session, query, DEBUG_RESULT_LIMIT)
    except SQLAlchemyError:
        logger.exception("Debug search failed")
        raise HTTPException(status_code=500, detail="Failed to query database")

    results = []
    for d in sort_destinations_by_relevance(matches):
        tier = _match_tier(d, query)
        results.append(
            DebugMatch(
                id=d.id,
                name=d.name,
                name_normalized=d.name_normalized,
                display_name=d.display_name,
                search_display_name=create_search_display_name(d),
                category=d.category,
                type=d.type,
                importance=d.importance,
                place_rank=d.place_rank,
                name_match=query in d.name.lower(),
                name_normalized_match=query in d.name_normalized.lower(),
                match_position=d.name.lower().find(query),
                tier=int(tier) if tier else None,
            )
        )
    return DebugResponse(
        query=query,
        total_results=len(results),
        results=results,
        countries={
            country: len(group)
            for country, group in group_destinations_by_country(matches).items()
        },
        explanation=(
            f'Showing all destinations where the NAME or NAME_NORMALIZED contains "{query}"'
        ),
    )
