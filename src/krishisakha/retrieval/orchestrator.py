"""Decides which agents to consult for a query and retries empty retrievals."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Mapping, Sequence

from krishisakha.metrics.observability import PipelineMetrics, get_logger
from krishisakha.models import DataType, QueryContext, RetrievedDatum, utcnow
from krishisakha.retrieval.agents import DataAgent, RetrievalFailure

MARKET_TOPICS = frozenset({"market", "price"})
SOIL_TOPICS = frozenset({"soil", "fertilizer"})
SCHEME_TOPICS = frozenset({"scheme", "subsidy"})

LAST_KNOWN_SOURCE = "Last known conditions"


def plan_retrieval(context: QueryContext) -> List[DataType]:
    """Return the ordered data types worth fetching for ``context``."""

    if context.location is None:
        return []
    topics = context.query_type
    plan: List[DataType] = ["weather"]
    if context.crop is not None or topics & MARKET_TOPICS:
        plan.append("market")
    plan.append("advisory")
    if topics & SOIL_TOPICS:
        plan.append("soil")
    if topics & SCHEME_TOPICS:
        plan.append("scheme")
    return plan


class RetrievalOrchestrator:
    """Runs the planned agents in order, retrying the batch while it comes back empty."""

    def __init__(
        self,
        agents: Mapping[str, DataAgent],
        *,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._agents = dict(agents)
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._logger = get_logger("retrieval")

    async def retrieve(self, context: QueryContext) -> List[RetrievedDatum]:
        plan = plan_retrieval(context)
        if not plan:
            self._logger.info("retrieval.skipped", reason="no_location")
            return []

        start = time.perf_counter()
        attempts = 0
        data: List[RetrievedDatum] = []
        while attempts < self._max_attempts:
            attempts += 1
            data = await self._run_batch(plan, context)
            if data:
                break
            self._logger.warning("retrieval.empty_batch", attempt=attempts, plan=plan)
            if attempts < self._max_attempts:
                await self._sleep(self._retry_delay)
        if not data:
            data = [self._last_known(context)]
        duration = time.perf_counter() - start
        PipelineMetrics.observe_retrieval(duration, len(data), attempts)
        self._logger.info(
            "retrieval.completed",
            plan=plan,
            attempts=attempts,
            datum_count=len(data),
            duration_seconds=duration,
        )
        return data

    async def _run_batch(self, plan: Sequence[DataType], context: QueryContext) -> List[RetrievedDatum]:
        collected: List[RetrievedDatum] = []
        for data_type in plan:
            agent = self._agents.get(data_type)
            if agent is None:
                continue
            try:
                collected.extend(await agent.retrieve(context.location, context.crop))
            except RetrievalFailure as failure:
                self._record_failure(failure)
            except Exception as exc:
                self._record_failure(RetrievalFailure(data_type, str(exc) or exc.__class__.__name__))
        return collected

    def _record_failure(self, failure: RetrievalFailure) -> None:
        PipelineMetrics.agent_failures.labels(data_type=failure.data_type).inc()
        self._logger.warning("retrieval.agent_failed", data_type=failure.data_type, detail=failure.detail)

    def _last_known(self, context: QueryContext) -> RetrievedDatum:
        location = context.location
        return RetrievedDatum(
            source_name=LAST_KNOWN_SOURCE,
            type="weather",
            payload={
                "location": location.display if location else "your area",
                "description": "Live data is temporarily unavailable; showing typical seasonal conditions.",
            },
            confidence=0.3,
            freshness="stale",
            reliability="low",
            timestamp=utcnow(),
            location=location,
        )


__all__ = ["LAST_KNOWN_SOURCE", "RetrievalOrchestrator", "plan_retrieval"]
