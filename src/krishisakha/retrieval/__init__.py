"""Retrieval components."""

from .agents import (
    AdvisoryAgent,
    CachedAgent,
    DataAgent,
    MarketAgent,
    RetrievalFailure,
    SchemeAgent,
    SoilAgent,
    WeatherAgent,
    default_agents,
)
from .cache import RetrievalCache
from .orchestrator import RetrievalOrchestrator, plan_retrieval

__all__ = [
    "AdvisoryAgent",
    "CachedAgent",
    "DataAgent",
    "MarketAgent",
    "RetrievalCache",
    "RetrievalFailure",
    "RetrievalOrchestrator",
    "SchemeAgent",
    "SoilAgent",
    "WeatherAgent",
    "default_agents",
    "plan_retrieval",
]
