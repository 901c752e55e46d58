"""
Accommodation page scraping.

Given a listing URL (hotel site, booking page, ...) pull out a name and an
address:

1. JSON-LD blocks describing a hotel / lodging / place with an address win.
2. Otherwise the page title and description are parsed into a name and a
   city, and a short list of free-text queries is geocoded in order until
   one matches.
3. If nothing geocodes, the parsed name alone is returned.

Every completed lookup is cached by URL.
"""
from __future__ import annotations

import json
import logging
import re
import time
from html.parser import HTMLParser
from typing import Callable, Dict, List, Optional, Tuple

import requests

from domain.models import ScrapedAccommodation
from services.geocoding import GeocodeMatch, search_address
from services.scrape_cache import ScrapeCache

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}
FETCH_ATTEMPTS = 3
FETCH_RETRY_DELAY_SEC = 0.25
FETCH_TIMEOUT_SEC = 10.0

_LODGING_TYPE_HINTS = ("hotel", "lodging", "place")
_TITLE_SPLIT_RE = re.compile(r"\s*[–—\-|]\s*")
_IN_CITY_RE = re.compile(r"\bin\s+([^,.\-]+)", re.IGNORECASE)

_session = requests.Session()


def fetch_with_retry(
    url: str,
    attempts: int = FETCH_ATTEMPTS,
    delay: float = FETCH_RETRY_DELAY_SEC,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """GET `url`, retrying on network errors and non-2xx responses.

    Raises the last error once all attempts are used up.
    """
    last_err: Optional[Exception] = None
    for _ in range(attempts):
        try:
            resp = _session.get(
                url,
                headers=headers or BROWSER_HEADERS,
                timeout=FETCH_TIMEOUT_SEC,
                allow_redirects=True,
            )
            if resp.ok:
                return resp
            last_err = requests.HTTPError(f"status {resp.status_code}", response=resp)
        except requests.RequestException as exc:
            last_err = exc
        time.sleep(delay)
    raise last_err or requests.RequestException(f"Failed to fetch {url}")


class PageMetadataParser(HTMLParser):
    """Collects <title>, <meta> content and JSON-LD script bodies."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.meta: Dict[str, str] = {}
        self.title_parts: List[str] = []
        self.json_ld_blocks: List[str] = []
        self._in_title = False
        self._in_json_ld = False
        self._script_parts: List[str] = []

    def handle_starttag(self, tag, attrs):
        attr_map = {k.lower(): (v or "") for k, v in attrs}
        if tag == "meta":
            key = attr_map.get("property") or attr_map.get("name")
            if key and "content" in attr_map:
                self.meta.setdefault(key.lower(), attr_map["content"])
        elif tag == "title":
            self._in_title = True
        elif tag == "script" and attr_map.get("type", "").lower() == "application/ld+json":
            self._in_json_ld = True
            self._script_parts = []

    def handle_endtag(self, tag):
        if tag == "title":
            self._in_title = False
        elif tag == "script" and self._in_json_ld:
            self._in_json_ld = False
            text = "".join(self._script_parts).strip()
            if text:
                self.json_ld_blocks.append(text)

    def handle_data(self, data):
        if self._in_title:
            self.title_parts.append(data)
        elif self._in_json_ld:
            self._script_parts.append(data)

    @property
    def raw_title(self) -> str:
        title = self.meta.get("og:title") or self.meta.get("title") or "".join(self.title_parts)
        return (title or "").strip()

    @property
    def raw_description(self) -> str:
        desc = self.meta.get("og:description") or self.meta.get("description")
        return (desc or "").strip()


def _first(mapping: dict, *keys):
    for key in keys:
        value = mapping.get(key)
        if value:
            return value
    return None


def _as_text(value) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("name")
    return str(value) if value else None


def _address_line_from_json_ld(address: dict) -> Optional[str]:
    street = _first(address, "houseNumber", "streetAddress", "street", "road")
    city = _first(address, "addressLocality", "city", "town", "village")
    postcode = _first(address, "postalCode", "postcode")
    country = _first(address, "addressCountry", "country")
    parts = [_as_text(p) for p in (street, city, postcode, country)]
    line = ", ".join(p for p in parts if p)
    return line or None


def extract_from_json_ld(blocks: List[str]) -> Optional[Tuple[Optional[str], Optional[str]]]:
    """Return (name, address_line) from the first lodging-like JSON-LD object."""
    for text in blocks:
        try:
            payload = json.loads(text)
        except ValueError:
            logger.debug("Skipping unparseable JSON-LD block")
            continue
        candidates = payload if isinstance(payload, list) else [payload]
        for obj in candidates:
            if not isinstance(obj, dict):
                continue
            raw_type = obj.get("@type") or obj.get("type") or ""
            if isinstance(raw_type, list):
                raw_type = ",".join(str(t) for t in raw_type)
            type_name = str(raw_type).lower()
            address = obj.get("address")
            if not (any(h in type_name for h in _LODGING_TYPE_HINTS) or address):
                continue
            name = _as_text(obj.get("name"))
            if isinstance(address, dict):
                return name, _address_line_from_json_ld(address)
            if obj.get("geo") and address:
                address_line = address if isinstance(address, str) else None
                if address_line or name:
                    return name, address_line
    return None


def parse_name_city(raw_title: str, raw_desc: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split 'Hotel Name - City | Site' style titles into a name and a city.

    A short 'in <City>' phrase in the description overrides the title's city.
    """
    title = re.sub(r"\s+", " ", raw_title or "").strip()
    parts = _TITLE_SPLIT_RE.split(title) if title else []
    name = parts[0].strip() if parts and parts[0].strip() else None
    city = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None

    desc = re.sub(r"\s+", " ", raw_desc or "")
    match = _IN_CITY_RE.search(desc)
    if match and match.group(1):
        candidate = match.group(1).strip()
        if not city or len(candidate) < 40:
            city = candidate
    return name, city


def build_geocode_queries(
    name: Optional[str], city: Optional[str], raw_title: str, raw_desc: str
) -> List[str]:
    candidates = [
        f"{name} {city}" if name and city else None,
        name,
        raw_title,
        raw_desc,
    ]
    queries: List[str] = []
    for q in candidates:
        if q and q not in queries:
            queries.append(q)
    return queries


class AccommodationScraper:
    def __init__(
        self,
        cache: ScrapeCache[ScrapedAccommodation],
        geocode: Callable[[str], Optional[GeocodeMatch]] = search_address,
        fetch: Callable[[str], requests.Response] = fetch_with_retry,
    ):
        self.cache = cache
        self.geocode = geocode
        self.fetch = fetch

    def _remember(self, url: str, result: ScrapedAccommodation) -> ScrapedAccommodation:
        self.cache.put(url, result)
        return result

    def scrape(self, url: str) -> ScrapedAccommodation:
        hit = self.cache.get(url)
        if hit is not None:
            logger.debug("Scrape cache hit for %s", url)
            return hit

        try:
            resp = self.fetch(url)
        except requests.RequestException as exc:
            logger.warning("Failed to fetch accommodation page %s: %s", url, exc)
            return ScrapedAccommodation()

        parser = PageMetadataParser()
        parser.feed(resp.text)
        parser.close()
        raw_title = parser.raw_title
        raw_desc = parser.raw_description

        json_ld = extract_from_json_ld(parser.json_ld_blocks)
        if json_ld and (json_ld[0] or json_ld[1]):
            name, address_line = json_ld
            return self._remember(
                url,
                ScrapedAccommodation(name=name or raw_title or None, address_line=address_line),
            )

        if not raw_title and not raw_desc:
            return ScrapedAccommodation()

        parsed_name, parsed_city = parse_name_city(raw_title, raw_desc)
        for query in build_geocode_queries(parsed_name, parsed_city, raw_title, raw_desc):
            match = self.geocode(query)
            if match is None:
                continue
            logger.info("Geocoded accommodation %s via query %r", url, query)
            return self._remember(
                url,
                ScrapedAccommodation(
                    name=match.name or parsed_name or raw_title or None,
                    address_line=match.address_line,
                    latitude=match.latitude,
                    longitude=match.longitude,
                ),
            )

        return self._remember(url, ScrapedAccommodation(name=parsed_name or raw_title or None))
