"""
Tests for tiered destination search ranking.
"""
import asyncio
import threading

import pytest

from conftest import make_destination
from domain.models import MatchTier
from services.destination_search import (
    DestinationSearch,
    DestinationSourceError,
    QueryTooShortError,
    merge_tiers,
    normalize_query,
    validate_query,
)


class InMemorySource:
    """Applies the tier predicates to a list, the way the SQL pool does."""

    def __init__(self, destinations):
        self.destinations = list(destinations)
        self.calls = []

    def _matches(self, tier, query, d):
        fields = (d.name.lower(), d.name_normalized.lower())
        if tier == MatchTier.EXACT:
            return query in fields
        if tier == MatchTier.PREFIX:
            return any(f.startswith(query) for f in fields)
        return any(query in f for f in fields)

    def fetch_tier(self, tier, query, limit, category=None, type_=None):
        self.calls.append((tier, query, limit, category, type_))
        rows = [
            d
            for d in self.destinations
            if self._matches(tier, query, d)
            and (not category or d.category == category)
            and (not type_ or d.type == type_)
        ]
        rows.sort(key=lambda d: (d.name.lower(), d.name, d.id))
        return rows[:limit]


class FailingSource(InMemorySource):
    def __init__(self, destinations, failing_tier):
        super().__init__(destinations)
        self.failing_tier = failing_tier

    def fetch_tier(self, tier, query, limit, category=None, type_=None):
        if tier == self.failing_tier:
            raise ConnectionError("database unavailable")
        return super().fetch_tier(tier, query, limit, category, type_)


def _search(source, query, limit=10, **kwargs):
    return asyncio.run(DestinationSearch(source).search(query, limit, **kwargs))


def _search_ranked(source, query, limit=10, **kwargs):
    return asyncio.run(DestinationSearch(source).search_ranked(query, limit, **kwargs))


def _names(results):
    return [d.name for d in results]


POOL = [
    make_destination(1, "Paris"),
    make_destination(2, "Particle City"),
    make_destination(3, "Saint-Par"),
    make_destination(5, "Rome", name_normalized="roma"),
    make_destination(7, "London"),
    make_destination(8, "Avalon"),
    make_destination(9, "Berlin", name_normalized="berlin"),
    make_destination(10, "Zürich", name_normalized="zurich"),
    make_destination(11, "Lyon", display_name="Lyon, Auvergne-Rhône-Alpes, France"),
]


def test_validate_query_rejects_short_queries():
    with pytest.raises(QueryTooShortError) as exc_info:
        validate_query(" a ")
    assert "at least 2 characters" in str(exc_info.value)
    with pytest.raises(QueryTooShortError):
        validate_query(None)


def test_validate_query_returns_trimmed_query():
    assert validate_query("  Rome ") == "Rome"


def test_normalize_query_trims_and_lowercases():
    assert normalize_query("  PaR ") == "par"


def test_prefix_matches_sorted_by_name_then_contains():
    results = _search_ranked(InMemorySource(POOL), "Par")
    assert _names(r.destination for r in results) == ["Paris", "Particle City", "Saint-Par"]
    assert [r.priority for r in results] == [
        MatchTier.PREFIX,
        MatchTier.PREFIX,
        MatchTier.CONTAINS,
    ]


def test_exact_match_on_name_is_case_insensitive():
    results = _search_ranked(InMemorySource(POOL), "rome")
    assert results[0].destination.id == "5"
    assert results[0].priority == MatchTier.EXACT


def test_exact_match_on_name_normalized():
    results = _search_ranked(InMemorySource(POOL), "roma")
    assert [(r.destination.id, r.priority) for r in results] == [("5", MatchTier.EXACT)]


def test_limit_truncates_lower_tiers():
    results = _search(InMemorySource(POOL), "lon", limit=1)
    assert _names(results) == ["London"]


def test_destination_in_several_tiers_kept_once_at_best_tier():
    results = _search_ranked(InMemorySource(POOL), "berlin")
    assert len(results) == 1
    assert results[0].destination.id == "9"
    assert results[0].priority == MatchTier.EXACT


def test_no_match_returns_empty_list():
    assert _search(InMemorySource(POOL), "zz-nomatch") == []


def test_limit_zero_returns_empty_list():
    assert _search(InMemorySource(POOL), "par", limit=0) == []


def test_display_name_is_never_matched():
    # "auvergne" only appears in Lyon's display_name
    assert _search(InMemorySource(POOL), "auvergne") == []


def test_name_normalized_prefix_match():
    results = _search_ranked(InMemorySource(POOL), "zur")
    assert [(r.destination.name, r.priority) for r in results] == [("Zürich", MatchTier.PREFIX)]


def test_search_returns_plain_destinations():
    results = _search(InMemorySource(POOL), "par")
    assert all(not hasattr(d, "priority") for d in results)


def test_category_and_type_filters_are_passed_to_every_tier():
    source = InMemorySource(
        POOL + [make_destination(20, "Paris Hilton Hotel", category="tourism", type="hotel")]
    )
    results = _search(source, "paris", category="tourism", type_="hotel")
    assert _names(results) == ["Paris Hilton Hotel"]
    assert {c[0] for c in source.calls} == set(MatchTier)
    assert all(c[3:] == ("tourism", "hotel") for c in source.calls)


def test_each_tier_fetch_is_capped_at_limit():
    source = InMemorySource(POOL)
    _search(source, "par", limit=2)
    assert [c[2] for c in source.calls] == [2, 2, 2]


def test_query_is_normalized_before_fetching():
    source = InMemorySource(POOL)
    _search(source, "  PARIS ")
    assert {c[1] for c in source.calls} == {"paris"}


def test_search_is_idempotent():
    source = InMemorySource(POOL)
    first = _search_ranked(source, "ar")
    second = _search_ranked(source, "ar")
    assert [(r.destination.id, r.priority) for r in first] == [
        (r.destination.id, r.priority) for r in second
    ]


def test_output_ids_are_unique_and_names_sorted_within_tier():
    pool = POOL + [
        make_destination(30, "arles"),
        make_destination(31, "Arcachon"),
        make_destination(32, "Ardennes"),
        make_destination(33, "Bari"),
    ]
    results = _search_ranked(InMemorySource(pool), "ar", limit=50)
    ids = [r.destination.id for r in results]
    assert len(ids) == len(set(ids))

    priorities = [r.priority for r in results]
    assert priorities == sorted(priorities)
    for tier in MatchTier:
        names = [r.destination.name.lower() for r in results if r.priority == tier]
        assert names == sorted(names)


def test_tier_fetches_run_concurrently():
    barrier = threading.Barrier(3, timeout=5)

    class BarrierSource(InMemorySource):
        def fetch_tier(self, tier, query, limit, category=None, type_=None):
            # Deadlocks (and times out) unless all three fetches are in flight together
            barrier.wait()
            return super().fetch_tier(tier, query, limit, category, type_)

    assert _names(_search(BarrierSource(POOL), "rome")) == ["Rome"]


@pytest.mark.parametrize("failing_tier", list(MatchTier))
def test_any_failed_tier_fails_the_whole_search(failing_tier):
    source = FailingSource(POOL, failing_tier)
    with pytest.raises(DestinationSourceError) as exc_info:
        _search(source, "par")
    assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestMergeTiers:
    def test_merge_skips_ids_already_taken_by_better_tier(self):
        a = make_destination("a", "Alpha")
        b = make_destination("b", "Beta")
        c = make_destination("c", "Gamma")
        merged = merge_tiers([[a], [a, b], [b, c, a]], limit=10)
        assert [(r.destination.id, r.priority) for r in merged] == [
            ("a", MatchTier.EXACT),
            ("b", MatchTier.PREFIX),
            ("c", MatchTier.CONTAINS),
        ]

    def test_merge_keeps_fetch_order_within_tier(self):
        z = make_destination("z", "Zeta")
        a = make_destination("a", "Alpha")
        merged = merge_tiers([[], [z, a], []], limit=10)
        assert [r.destination.id for r in merged] == ["z", "a"]

    def test_merge_truncates_to_first_limit_entries(self):
        tiers = [
            [make_destination("1", "One")],
            [make_destination("2", "Two"), make_destination("3", "Three")],
            [make_destination("4", "Four")],
        ]
        merged = merge_tiers(tiers, limit=2)
        assert [r.destination.id for r in merged] == ["1", "2"]

    def test_merge_does_not_mask_malformed_records(self):
        with pytest.raises(AttributeError):
            merge_tiers([[object()], [], []], limit=5)
