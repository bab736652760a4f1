from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone

import pytest

from krishisakha.models import Crop
from krishisakha.retrieval import MarketAgent, RetrievalCache, SoilAgent, WeatherAgent, default_agents
from krishisakha.retrieval.agents import RetrievalFailure, current_season


def test_weather_values_within_bounds(clock, punjab):
    agent = WeatherAgent(RetrievalCache(clock=clock), rng=random.Random(7), clock=clock)
    (datum,) = asyncio.run(agent.retrieve(punjab))
    payload = datum.payload
    assert datum.type == "weather"
    assert datum.freshness == "fresh"
    assert 25 <= payload["temperature"] <= 40
    assert 60 <= payload["humidity"] <= 90
    assert 0 <= payload["rainfall"] <= 50
    assert len(payload["forecast"]) == 3


def test_second_call_is_served_from_cache(clock, punjab):
    agent = MarketAgent(RetrievalCache(clock=clock), rng=random.Random(1), clock=clock)
    wheat = Crop(name="wheat", season="rabi")
    (first,) = asyncio.run(agent.retrieve(punjab, wheat))
    (second,) = asyncio.run(agent.retrieve(punjab, wheat))
    assert first.freshness == "fresh"
    assert second.freshness == "cached"
    assert second.payload == first.payload


def test_market_prices_are_ordered(clock, punjab):
    agent = MarketAgent(RetrievalCache(clock=clock), rng=random.Random(3), clock=clock)
    (datum,) = asyncio.run(agent.retrieve(punjab))
    prices = datum.payload["prices"]
    assert len(prices) == 5
    for price in prices:
        assert price["min_price"] <= price["modal_price"] <= price["max_price"]
        assert price["unit"] == "per quintal"
        assert price["market"] == "Ludhiana APMC"


def test_market_for_untracked_crop_lists_alternatives(clock, punjab):
    agent = MarketAgent(RetrievalCache(clock=clock), rng=random.Random(3), clock=clock)
    (datum,) = asyncio.run(agent.retrieve(punjab, Crop(name="jowar", season="kharif")))
    assert datum.payload["requested_crop"] == "jowar"
    assert datum.payload["prices"] == []
    assert datum.payload["alternatives"]


def test_soil_card_is_cached_and_dated_in_the_past(clock, punjab):
    agent = SoilAgent(RetrievalCache(clock=clock), rng=random.Random(2), clock=clock)
    (datum,) = asyncio.run(agent.retrieve(punjab))
    assert datum.freshness == "cached"
    assert datum.cache_time < datum.timestamp
    assert 6.5 <= datum.payload["ph"] <= 8.5


def test_failing_agent_raises_retrieval_failure(clock, punjab):
    class BrokenWeather(WeatherAgent):
        def synthesize(self, location, crop, now):
            raise RuntimeError("sensor offline")

    cache = RetrievalCache(clock=clock)
    agent = BrokenWeather(cache, clock=clock)
    with pytest.raises(RetrievalFailure) as excinfo:
        asyncio.run(agent.retrieve(punjab))
    assert excinfo.value.data_type == "weather"
    assert excinfo.value.detail == "sensor offline"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert len(cache) == 0


def test_default_agents_cover_every_type(clock):
    agents = default_agents(RetrievalCache(clock=clock), clock=clock)
    assert set(agents) == {"weather", "market", "advisory", "soil", "scheme"}


def test_seasons():
    assert current_season(datetime(2024, 7, 1, tzinfo=timezone.utc)) == "kharif"
    assert current_season(datetime(2024, 12, 1, tzinfo=timezone.utc)) == "rabi"
    assert current_season(datetime(2024, 2, 1, tzinfo=timezone.utc)) == "rabi"
    assert current_season(datetime(2024, 4, 15, tzinfo=timezone.utc)) == "zaid"
