"""Synthetic agricultural data agents (weather, mandi prices, advisories, soil, schemes).

The agents stand in for IMD, AGMARKNET, KVK, Soil Health Card and scheme
portals. Payloads are fixed templates plus bounded random values.
"""

from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Protocol, Sequence

from krishisakha.metrics.observability import PipelineMetrics
from krishisakha.models import DATA_TTL, Crop, DataType, Location, RetrievedDatum, utcnow
from krishisakha.retrieval.cache import CacheKey, RetrievalCache, make_key


class RetrievalFailure(RuntimeError):
    """Raised when an agent cannot produce its payload."""

    def __init__(self, data_type: str, detail: str) -> None:
        super().__init__(f"{data_type} agent failed: {detail}")
        self.data_type = data_type
        self.detail = detail


def current_season(now: datetime) -> str:
    if 6 <= now.month <= 10:
        return "kharif"
    if now.month >= 11 or now.month <= 3:
        return "rabi"
    return "zaid"


class DataAgent(Protocol):
    """Protocol describing a retrieval agent."""

    data_type: DataType

    async def retrieve(self, location: Location, crop: Crop | None = None) -> Sequence[RetrievedDatum]:
        """Return zero or more data points for the location and crop."""


class CachedAgent:
    """Base agent: cache lookup, payload synthesis, cache write."""

    data_type: DataType
    source_name: str
    confidence: float = 0.9
    crop_scoped = False

    def __init__(
        self,
        cache: RetrievalCache,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._cache = cache
        self._rng = rng or random.Random()
        self._clock = clock

    def cache_key(self, location: Location, crop: Crop | None = None) -> CacheKey:
        crop_name = crop.name if crop is not None and self.crop_scoped else None
        return make_key(self.data_type, location.key, crop_name)

    async def retrieve(self, location: Location, crop: Crop | None = None) -> Sequence[RetrievedDatum]:
        """Return the cached datum or a freshly built one.

        Any error from the cache or payload synthesis is raised as
        :class:`RetrievalFailure`; nothing is cached for a failed build.
        """

        try:
            key = self.cache_key(location, crop)
            cached = self._cache.get(key)
            PipelineMetrics.observe_cache(self.data_type, hit=cached is not None)
            if cached is not None:
                return [cached]
            datum = self.build(location, crop)
            self._cache.put(key, datum, DATA_TTL[self.data_type])
        except Exception as exc:
            raise RetrievalFailure(self.data_type, str(exc) or exc.__class__.__name__) from exc
        return [datum]

    def build(self, location: Location, crop: Crop | None) -> RetrievedDatum:
        now = self._clock()
        return RetrievedDatum(
            source_name=self.source_name,
            type=self.data_type,
            payload=self.synthesize(location, crop, now),
            confidence=self.confidence,
            timestamp=now,
            location=location,
            crop=crop.name if crop is not None and self.crop_scoped else None,
        )

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        raise NotImplementedError


class WeatherAgent(CachedAgent):
    data_type: DataType = "weather"
    source_name = "Indian Meteorological Department"
    confidence = 0.9

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        rng = self._rng
        return {
            "location": location.display,
            "temperature": round(25 + rng.random() * 15),
            "humidity": round(60 + rng.random() * 30),
            "rainfall": round(rng.random() * 50),
            "wind_speed": round(5 + rng.random() * 15),
            "uv_index": round(3 + rng.random() * 7),
            "description": rng.choice(("Partly cloudy", "Sunny", "Humid", "Light rain")),
            "forecast": [
                {"day": "Today", "temp": 28, "condition": "Partly Cloudy", "rain": 10},
                {"day": "Tomorrow", "temp": 30, "condition": "Sunny", "rain": 0},
                {"day": "Day 3", "temp": 26, "condition": "Light Rain", "rain": 25},
            ],
        }


# Commodities tracked by the mandi feed: (min floor, spread) in rupees per quintal.
MANDI_COMMODITIES: Mapping[str, tuple[int, int]] = {
    "rice": (2000, 900),
    "paddy": (1900, 600),
    "wheat": (2100, 500),
    "maize": (1800, 500),
    "cotton": (6000, 1500),
    "sugarcane": (300, 80),
    "soybean": (4000, 900),
    "mustard": (5000, 900),
    "gram": (4800, 700),
    "groundnut": (5200, 1000),
    "onion": (1200, 1500),
    "potato": (900, 900),
    "tomato": (800, 1800),
}
DEFAULT_COMMODITIES: Sequence[str] = ("rice", "wheat", "maize", "cotton", "sugarcane")


class MarketAgent(CachedAgent):
    data_type: DataType = "market"
    source_name = "AGMARKNET"
    confidence = 0.85
    crop_scoped = True

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        market = f"{(location.district or location.state or 'local').title()} APMC"
        alternatives: list[str] = []
        if crop is None:
            commodities: Sequence[str] = DEFAULT_COMMODITIES
        elif crop.name in MANDI_COMMODITIES:
            commodities = (crop.name,)
        else:
            commodities = ()
            alternatives = [name for name in DEFAULT_COMMODITIES if name != crop.name]
        return {
            "location": location.display,
            "date": now.date().isoformat(),
            "requested_crop": crop.name if crop is not None else None,
            "prices": [self._price(name, market) for name in commodities],
            "alternatives": alternatives,
            "trend": self._rng.choice(("increasing", "stable", "decreasing")),
        }

    def _price(self, commodity: str, market: str) -> Mapping[str, Any]:
        floor, spread = MANDI_COMMODITIES[commodity]
        low = round(floor + self._rng.random() * spread * 0.3)
        high = round(low + spread * (0.4 + self._rng.random() * 0.6))
        modal = round(low + (high - low) * (0.4 + self._rng.random() * 0.3))
        return {
            "crop": commodity.title(),
            "variety": "Grade A",
            "min_price": low,
            "max_price": high,
            "modal_price": modal,
            "unit": "per quintal",
            "market": market,
        }


class AdvisoryAgent(CachedAgent):
    data_type: DataType = "advisory"
    source_name = "Agricultural Advisory Services"
    confidence = 0.8
    crop_scoped = True

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        crop_label = crop.name if crop is not None else "major crops"
        season = current_season(now)
        advisories = [
            {
                "title": "Weather-based Advisory",
                "content": f"Current weather conditions are favorable for {crop_label}. Expected light rainfall in next 3 days.",
                "priority": "medium",
                "valid_until": (now + timedelta(days=7)).date().isoformat(),
                "source": "Krishi Vigyan Kendra",
            },
            {
                "title": "Pest Management",
                "content": "Monitor for early signs of bollworm in cotton crops. Use integrated pest management practices.",
                "priority": "high",
                "valid_until": (now + timedelta(days=5)).date().isoformat(),
                "source": "State Agricultural Department",
            },
            {
                "title": "Fertilizer Recommendation",
                "content": "Apply balanced NPK fertilizer based on soil test results. Recommended dose: 120:60:40 NPK per hectare.",
                "priority": "medium",
                "valid_until": (now + timedelta(days=14)).date().isoformat(),
                "source": "Soil Health Card Program",
            },
        ]
        advisories.extend(_seasonal_advisories(season, crop))
        return {"location": location.display, "season": season, "advisories": advisories}


def _seasonal_advisories(season: str, crop: Crop | None) -> list[Mapping[str, Any]]:
    items: list[Mapping[str, Any]] = []
    name = crop.name if crop is not None else ""
    if name in ("rice", "paddy") and season == "kharif":
        items.append({
            "title": "Kharif Sowing",
            "content": "Ideal time for transplanting paddy seedlings. Ensure 5-7 cm standing water.",
            "priority": "high",
            "valid_until": "July",
            "source": "Agricultural Calendar",
        })
    if name == "wheat" and season == "rabi":
        items.append({
            "title": "Rabi Sowing",
            "content": "Optimal sowing time for wheat. Use certified seeds and balanced fertilizers.",
            "priority": "high",
            "valid_until": "December",
            "source": "Agricultural Calendar",
        })
    seasonal = {
        "kharif": "Monitor weather forecasts for monsoon patterns. Ensure proper drainage in fields.",
        "rabi": "Plan irrigation around winter rainfall and protect seedlings from frost.",
        "zaid": "Use short-duration summer crops and irrigate in the early morning or evening.",
    }
    items.append({
        "title": f"{season.title()} Season",
        "content": seasonal[season],
        "priority": "medium",
        "valid_until": "End of season",
        "source": "Agricultural Calendar",
    })
    return items


class SoilAgent(CachedAgent):
    data_type: DataType = "soil"
    source_name = "Soil Health Card Program"
    confidence = 0.85

    def build(self, location: Location, crop: Crop | None) -> RetrievedDatum:
        # Soil cards come from lab tests taken weeks earlier.
        datum = super().build(location, crop)
        return replace(datum, freshness="cached", cache_time=datum.timestamp - timedelta(days=30))

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        rng = self._rng
        return {
            "ph": round(6.5 + rng.random() * 2, 1),
            "organic_carbon": round(0.3 + rng.random() * 0.5, 2),
            "nitrogen": rng.choice(("Low", "Medium")),
            "phosphorus": rng.choice(("Medium", "High")),
            "potassium": rng.choice(("Medium", "High")),
            "soil_type": rng.choice(("Alluvial", "Red", "Black", "Laterite")),
            "recommendations": [
                "Apply 2-3 tonnes of well decomposed FYM per hectare",
                "Maintain soil pH between 6.0-7.5 for optimal crop growth",
                "Regular soil testing every 3 years is recommended",
            ],
            "test_date": (now - timedelta(days=30)).date().isoformat(),
            "district": location.district,
            "state": location.state,
        }


SCHEMES: Sequence[Mapping[str, str]] = (
    {
        "name": "PM-KISAN",
        "description": "Income support to farmer families",
        "eligibility": "Small and marginal farmers with landholding up to 2 hectares",
        "benefit": "Rs 6,000 per year in three installments",
        "application_process": "Online through PM-KISAN portal or Common Service Centers",
        "status": "Active",
    },
    {
        "name": "Pradhan Mantri Fasal Bima Yojana",
        "description": "Crop insurance scheme",
        "eligibility": "All farmers growing notified crops",
        "benefit": "Insurance coverage against crop loss",
        "application_process": "Through banks, insurance companies, or online portal",
        "status": "Active",
    },
    {
        "name": "Soil Health Card Scheme",
        "description": "Free soil testing and nutrient recommendations",
        "eligibility": "All farmers",
        "benefit": "Free soil analysis and fertilizer recommendations",
        "application_process": "Contact local Krishi Vigyan Kendra or Agriculture Department",
        "status": "Active",
    },
    {
        "name": "Kisan Credit Card",
        "description": "Flexible credit facility for farmers at concessional rates",
        "eligibility": "All farmers including tenant farmers and oral lessees",
        "benefit": "Short-term crop loans at subsidised interest",
        "application_process": "Apply at any commercial, cooperative or regional rural bank",
        "status": "Active",
    },
)


class SchemeAgent(CachedAgent):
    data_type: DataType = "scheme"
    source_name = "Government Scheme Database"
    confidence = 0.9

    def synthesize(self, location: Location, crop: Crop | None, now: datetime) -> Mapping[str, Any]:
        return {"state": location.state, "schemes": [dict(scheme) for scheme in SCHEMES]}


def default_agents(
    cache: RetrievalCache,
    *,
    rng: random.Random | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Mapping[str, CachedAgent]:
    rng = rng or random.Random()
    agents = (
        WeatherAgent(cache, rng=rng, clock=clock),
        MarketAgent(cache, rng=rng, clock=clock),
        AdvisoryAgent(cache, rng=rng, clock=clock),
        SoilAgent(cache, rng=rng, clock=clock),
        SchemeAgent(cache, rng=rng, clock=clock),
    )
    return {agent.data_type: agent for agent in agents}
