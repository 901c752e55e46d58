"""
Destination search ranking.

A query is matched against `name` and `name_normalized` at three tiers
(exact, prefix, contains). The tiers are fetched concurrently from a
DestinationSource and merged so each destination appears once, at the best
tier it reached, before the list is truncated to the requested limit.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from starlette.concurrency import run_in_threadpool

from domain.models import Destination, MatchTier, RankedDestination

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class QueryTooShortError(ValueError):
    def __init__(self, min_length: int = MIN_QUERY_LENGTH):
        super().__init__(f"Query must be at least {min_length} characters long")
        self.min_length = min_length


class DestinationSourceError(RuntimeError):
    """Raised when any tier fetch fails; no partial results are returned."""


class DestinationSource(Protocol):
    def fetch_tier(
        self,
        tier: MatchTier,
        query: str,
        limit: int,
        category: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> List[Destination]:
        ...


def validate_query(raw: Optional[str], min_length: int = MIN_QUERY_LENGTH) -> str:
    """Return the trimmed query, or raise QueryTooShortError."""
    trimmed = (raw or "").strip()
    if len(trimmed) < min_length:
        raise QueryTooShortError(min_length)
    return trimmed


def normalize_query(raw: str) -> str:
    return raw.strip().lower()


def merge_tiers(
    tier_results: Sequence[Sequence[Destination]], limit: int
) -> List[RankedDestination]:
    """
    Merge per-tier result lists in tier order, skipping ids already taken by
    a better tier, then keep the first `limit` entries.

    `tier_results[0]` is tier 1 (exact), `[1]` prefix, `[2]` contains. Each
    list keeps the order it was fetched in.
    """
    merged: List[RankedDestination] = []
    seen = set()
    for tier, results in zip(MatchTier, tier_results):
        for destination in results:
            if destination.id in seen:
                continue
            seen.add(destination.id)
            merged.append(RankedDestination(destination=destination, priority=tier))
    return merged[:limit]


class DestinationSearch:
    """Ranks destinations from a DestinationSource for a free-text query."""

    def __init__(self, source: DestinationSource):
        self.source = source

    async def _fetch_all(
        self,
        query: str,
        limit: int,
        category: Optional[str],
        type_: Optional[str],
    ) -> List[List[Destination]]:
        fetches = [
            run_in_threadpool(
                self.source.fetch_tier, tier, query, limit, category=category, type_=type_
            )
            for tier in MatchTier
        ]
        try:
            return list(await asyncio.gather(*fetches))
        except Exception as exc:
            logger.error("Destination tier fetch failed for query=%r: %s", query, exc)
            raise DestinationSourceError("Failed to search destinations") from exc

    async def search_ranked(
        self,
        query: str,
        limit: int,
        category: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> List[RankedDestination]:
        normalized = normalize_query(query)
        tier_results = await self._fetch_all(normalized, limit, category, type_)
        logger.debug(
            "Destination search q=%r tiers=%s",
            normalized,
            [len(r) for r in tier_results],
        )
        return merge_tiers(tier_results, limit)

    async def search(
        self,
        query: str,
        limit: int,
        category: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> List[Destination]:
        ranked = await self.search_ranked(query, limit, category=category, type_=type_)
        return [r.destination for r in ranked]
