"""
Airport search API routes.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from db import SessionLocal
from domain.models import Airport
from repositories import AirportsRepository
from settings import settings

router = APIRouter()
airports_repo = AirportsRepository()
logger = logging.getLogger(__name__)

AIRPORT_RESULT_LIMIT = 10


class AirportResponse(BaseModel):
    id: str
    name: str
    city: Optional[str] = None
    country_name: Optional[str] = None
    iata_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    display: str
    short_display: str


class AirportSearchResponse(BaseModel):
    airports: List[AirportResponse]


def airport_to_response(airport: Airport) -> AirportResponse:
    return AirportResponse(
        id=airport.id,
        name=airport.name,
        city=airport.city,
        country_name=airport.country_name,
        iata_code=airport.iata_code,
        latitude=airport.latitude,
        longitude=airport.longitude,
        display=airport.display,
        short_display=airport.short_display,
    )


@router.get("/search", response_model=AirportSearchResponse)
async def search_airports(q: Optional[str] = None):
    """Autocomplete airports by name, city, country or IATA code."""
    term = (q or "").strip()
    if len(term) < settings.SEARCH_MIN_QUERY_LENGTH:
        return AirportSearchResponse(airports=[])

    try:
        with SessionLocal() as session:
            airports = airports_repo.search(session, term, AIRPORT_RESULT_LIMIT)
    except SQLAlchemyError:
        logger.exception("Airport search failed for q=%r", term)
        raise HTTPException(status_code=500, detail="Failed to search airports")

    return AirportSearchResponse(airports=[airport_to_response(a) for a in airports])
