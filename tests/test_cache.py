from __future__ import annotations

from datetime import timedelta

import pytest

from krishisakha.models import RetrievedDatum
from krishisakha.retrieval.cache import RetrievalCache, make_key


def _datum(clock, **overrides) -> RetrievedDatum:
    values = {
        "source_name": "AGMARKNET",
        "type": "market",
        "payload": {"prices": []},
        "confidence": 0.85,
        "timestamp": clock(),
    }
    values.update(overrides)
    return RetrievedDatum(**values)


def test_hit_within_ttl_is_marked_cached(clock):
    cache = RetrievalCache(clock=clock)
    key = make_key("market", "punjab/-", "wheat")
    datum = _datum(clock)
    cache.put(key, datum, timedelta(hours=24))

    clock.advance(hours=23)
    hit = cache.get(key)
    assert hit is not None
    assert hit.freshness == "cached"
    assert hit.payload == datum.payload
    assert hit.cache_time == datum.timestamp


def test_expired_entry_is_never_returned(clock):
    cache = RetrievalCache(clock=clock)
    key = make_key("weather", "punjab/ludhiana")
    cache.put(key, _datum(clock, type="weather"), timedelta(hours=1))

    clock.advance(hours=1)
    assert cache.get(key) is None
    assert len(cache) == 0


def test_existing_cache_time_is_preserved(clock):
    cache = RetrievalCache(clock=clock)
    tested = clock() - timedelta(days=30)
    key = make_key("soil", "punjab/ludhiana")
    cache.put(key, _datum(clock, type="soil", freshness="cached", cache_time=tested), timedelta(days=7))
    assert cache.get(key).cache_time == tested


def test_oldest_entry_evicted_when_full(clock):
    cache = RetrievalCache(max_entries=2, clock=clock)
    for crop in ("rice", "wheat", "maize"):
        cache.put(make_key("market", "punjab/-", crop), _datum(clock), timedelta(hours=1))
    assert len(cache) == 2
    assert cache.get(make_key("market", "punjab/-", "rice")) is None
    assert cache.get(make_key("market", "punjab/-", "maize")) is not None


def test_general_key_used_without_crop():
    assert make_key("weather", "punjab/-") == ("weather", "punjab/-", "general")


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        RetrievalCache(max_entries=0)
