"""
Core domain models for the destination search service.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional


class MatchTier(IntEnum):
    """
    Relevance tiers used by destination search.

    Lower values rank higher:
    - EXACT: name or name_normalized equals the query
    - PREFIX: name or name_normalized starts with the query
    - CONTAINS: name or name_normalized contains the query
    """
    EXACT = 1
    PREFIX = 2
    CONTAINS = 3


@dataclass
class Destination:
    """
    A destination in the search pool.

    `id` is unique within the pool and is the de-duplication key for search
    results. Records are read-only for the ranker.
    """
    id: str
    name: str
    name_normalized: str
    display_name: str
    category: str
    type: str
    lat: float
    lon: float
    importance: float
    place_rank: int
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    boundingbox: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "name_normalized": self.name_normalized,
            "display_name": self.display_name,
            "category": self.category,
            "type": self.type,
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "lat": self.lat,
            "lon": self.lon,
            "importance": self.importance,
            "place_rank": self.place_rank,
            "boundingbox": self.boundingbox,
        }


@dataclass
class RankedDestination:
    """A destination tagged with the tier it was assigned while merging."""
    destination: Destination
    priority: MatchTier


@dataclass
class Airport:
    id: str
    name: str
    city: Optional[str] = None
    country_name: Optional[str] = None
    iata_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def display(self) -> str:
        """Long label for autocomplete lists, e.g. 'Heathrow (LHR), London, United Kingdom'."""
        label = self.name
        if self.iata_code:
            label += f" ({self.iata_code})"
        if self.city:
            label += f", {self.city}"
        if self.country_name:
            label += f", {self.country_name}"
        return label

    @property
    def short_display(self) -> str:
        """Compact label for the input field, e.g. 'LHR - Heathrow, London'."""
        label = f"{self.iata_code} - " if self.iata_code else ""
        label += self.name
        if self.city:
            label += f", {self.city}"
        return label


@dataclass
class ScrapedAccommodation:
    """Best-effort details scraped from an accommodation listing page."""
    name: Optional[str] = None
    address_line: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address_line": self.address_line,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
