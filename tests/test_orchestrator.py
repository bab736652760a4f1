from __future__ import annotations

import asyncio
import random

from prometheus_client import REGISTRY

from krishisakha.models import Crop, Location, QueryContext, RetrievedDatum
from krishisakha.retrieval import RetrievalCache, RetrievalOrchestrator, WeatherAgent, default_agents, plan_retrieval
from krishisakha.retrieval.orchestrator import LAST_KNOWN_SOURCE


class EmptyAgent:
    def __init__(self, data_type: str) -> None:
        self.data_type = data_type
        self.calls = 0

    async def retrieve(self, location, crop=None):
        self.calls += 1
        return []


def _orchestrator(clock, sleep) -> RetrievalOrchestrator:
    agents = default_agents(RetrievalCache(clock=clock), rng=random.Random(11), clock=clock)
    return RetrievalOrchestrator(agents, sleep=sleep)


def test_plan_without_location_is_empty():
    context = QueryContext(language="eng", crop=Crop(name="wheat"), query_type=frozenset({"market"}))
    assert plan_retrieval(context) == []


def test_plan_for_location_only_has_weather_and_advisory():
    context = QueryContext(language="eng", location=Location(state="bihar"))
    assert plan_retrieval(context) == ["weather", "advisory"]


def test_plan_includes_topic_agents():
    context = QueryContext(
        language="eng",
        location=Location(state="bihar"),
        query_type=frozenset({"price", "fertilizer", "subsidy"}),
    )
    assert plan_retrieval(context) == ["weather", "market", "advisory", "soil", "scheme"]


def test_wheat_prices_include_weather_and_market(clock, wheat_context, recording_sleep):
    data = asyncio.run(_orchestrator(clock, recording_sleep).retrieve(wheat_context))
    types = [datum.type for datum in data]
    assert types[:3] == ["weather", "market", "advisory"]


def test_location_without_crop_never_fetches_market(clock, recording_sleep):
    context = QueryContext(language="eng", location=Location(state="punjab"), query_type=frozenset({"weather"}))
    data = asyncio.run(_orchestrator(clock, recording_sleep).retrieve(context))
    types = {datum.type for datum in data}
    assert "weather" in types
    assert "market" not in types


def test_no_location_returns_empty_without_retry(clock, recording_sleep):
    sleep = recording_sleep
    context = QueryContext(language="eng", crop=Crop(name="rice"))
    assert asyncio.run(_orchestrator(clock, sleep).retrieve(context)) == []
    assert sleep.calls == []


def test_empty_batches_retry_then_fall_back_to_last_known(wheat_context, recording_sleep):
    agents = {name: EmptyAgent(name) for name in ("weather", "market", "advisory")}
    sleep = recording_sleep
    orchestrator = RetrievalOrchestrator(agents, max_attempts=3, retry_delay=1.0, sleep=sleep)

    data = asyncio.run(orchestrator.retrieve(wheat_context))

    assert sleep.calls == [1.0, 1.0]
    assert all(agent.calls == 3 for agent in agents.values())
    assert len(data) == 1
    (fallback,) = data
    assert isinstance(fallback, RetrievedDatum)
    assert fallback.source_name == LAST_KNOWN_SOURCE
    assert fallback.type == "weather"
    assert fallback.freshness == "stale"
    assert fallback.reliability == "low"


def test_recovers_on_second_attempt(wheat_context, recording_sleep):
    class FlakyWeather:
        data_type = "weather"

        def __init__(self) -> None:
            self.calls = 0

        async def retrieve(self, location, crop=None):
            self.calls += 1
            if self.calls == 1:
                return []
            return [RetrievedDatum(source_name="IMD", type="weather", payload={}, confidence=0.9, location=location)]

    sleep = recording_sleep
    orchestrator = RetrievalOrchestrator({"weather": FlakyWeather()}, sleep=sleep)
    data = asyncio.run(orchestrator.retrieve(wheat_context))
    assert [datum.source_name for datum in data] == ["IMD"]
    assert sleep.calls == [1.0]


class RaisingAgent:
    data_type = "market"

    async def retrieve(self, location, crop=None):
        raise RuntimeError("mandi feed down")


def test_raising_agent_does_not_abort_batch(clock, wheat_context, recording_sleep):
    labels = {"data_type": "market"}
    before = REGISTRY.get_sample_value("krishisakha_agent_failures_total", labels) or 0.0
    agents = default_agents(RetrievalCache(clock=clock), rng=random.Random(11), clock=clock)
    agents["market"] = RaisingAgent()
    orchestrator = RetrievalOrchestrator(agents, sleep=recording_sleep)

    data = asyncio.run(orchestrator.retrieve(wheat_context))

    assert [datum.type for datum in data] == ["weather", "advisory"]
    assert recording_sleep.calls == []
    assert REGISTRY.get_sample_value("krishisakha_agent_failures_total", labels) == before + 1


def test_broken_cached_agent_contributes_nothing(clock, wheat_context, recording_sleep):
    class BrokenWeather(WeatherAgent):
        def synthesize(self, location, crop, now):
            raise RuntimeError("sensor offline")

    cache = RetrievalCache(clock=clock)
    agents = default_agents(cache, rng=random.Random(11), clock=clock)
    agents["weather"] = BrokenWeather(cache, clock=clock)
    orchestrator = RetrievalOrchestrator(agents, sleep=recording_sleep)

    data = asyncio.run(orchestrator.retrieve(wheat_context))

    assert [datum.type for datum in data] == ["market", "advisory"]
