"""Lightweight forward geocoding helpers using OpenStreetMap Nominatim.

Used by the accommodation scraper to turn a page title or address fragment
into a street address and coordinates.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

NOMINATIM_SEARCH_URL = os.getenv(
    "NOMINATIM_SEARCH_URL", "https://nominatim.openstreetmap.org/search"
)
logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
_MIN_INTERVAL_SEC = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.1"))
_logged_ua = False
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT")
NOMINATIM_REFERER = os.getenv("NOMINATIM_REFERER")

FALLBACK_UA = "trip-planner-search/0.1 (contact: example@example.com)"
if NOMINATIM_USER_AGENT is None:
    logger.warning(
        "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


_ua_value = NOMINATIM_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
}
if NOMINATIM_REFERER:
    NOMINATIM_HEADERS["Referer"] = NOMINATIM_REFERER


@dataclass(frozen=True)
class GeocodeMatch:
    name: Optional[str]
    address_line: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < _MIN_INTERVAL_SEC:
            time.sleep(_MIN_INTERVAL_SEC - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_address_line(result: dict) -> str:
    """
    Build 'street, city, postcode, country' from a Nominatim result.

    Falls back to the display_name minus its first component (usually the
    place's own name) when the address block is empty.
    """
    address = result.get("address") or {}
    city = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("hamlet")
    )
    if address.get("house_number") and address.get("road"):
        street = f"{address['house_number']} {address['road']}"
    else:
        street = (
            address.get("road")
            or address.get("pedestrian")
            or address.get("path")
            or address.get("neighbourhood")
        )
    parts = [street, city, address.get("postcode"), address.get("country")]
    line = ", ".join(str(p) for p in parts if p)
    if line:
        return line

    display = result.get("display_name") or ""
    idx = display.find(",")
    return display[idx + 1:].strip() if idx > -1 else display


def search_address(query: str, timeout: float = 5.0) -> Optional[GeocodeMatch]:
    """Forward geocode free text into the best Nominatim match.

    Returns None when nothing matches or on network/parsing errors.
    """
    global _logged_ua
    if not _logged_ua:
        logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
        _logged_ua = True

    params = {
        "q": query,
        "format": "jsonv2",
        "addressdetails": "1",
        "limit": "1",
    }
    try:
        resp = _throttled_get(
            NOMINATIM_SEARCH_URL, params=params, headers=NOMINATIM_HEADERS, timeout=timeout
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Nominatim search error for q=%r: %s", query, exc)
        return None

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Nominatim search JSON error for q=%r: %s", query, exc)
        return None

    if not isinstance(data, list) or not data:
        return None
    result = data[0]
    return GeocodeMatch(
        name=result.get("name") or None,
        address_line=format_address_line(result),
        latitude=_to_float(result.get("lat")),
        longitude=_to_float(result.get("lon")),
    )
