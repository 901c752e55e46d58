"""
Accommodation API routes.
"""
from typing import Any, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from domain.models import ScrapedAccommodation
from services.accommodation_scrape import AccommodationScraper
from services.scrape_cache import ScrapeCache, make_eviction_policy
from settings import settings

router = APIRouter()
scrape_cache: ScrapeCache[ScrapedAccommodation] = ScrapeCache(
    capacity=settings.SCRAPE_CACHE_SIZE,
    eviction=make_eviction_policy(settings.SCRAPE_CACHE_POLICY),
)
scraper = AccommodationScraper(cache=scrape_cache)


class ScrapeResponse(BaseModel):
    name: Optional[str] = None
    address_line: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_accommodation(payload: dict = Body(...)):
    """Pull a name, address and coordinates out of a listing page URL."""
    url = payload.get("url")
    if not _is_http_url(url):
        raise HTTPException(status_code=400, detail="Invalid url")

    result = await run_in_threadpool(scraper.scrape, url.strip())
    return ScrapeResponse(**result.to_dict())
