"""Shared domain models used across the advisory pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, FrozenSet, Literal, Mapping, Sequence

DataType = Literal["weather", "market", "advisory", "soil", "scheme"]
Freshness = Literal["fresh", "cached", "stale"]
Reliability = Literal["high", "medium", "low"]
FactualBasis = Literal["high", "medium", "low"]
Season = Literal["kharif", "rabi", "zaid", "perennial"]

DATA_TYPES: tuple[DataType, ...] = ("weather", "market", "advisory", "soil", "scheme")

# Cache lifetime per data type.
DATA_TTL: Mapping[str, timedelta] = {
    "weather": timedelta(hours=1),
    "market": timedelta(hours=24),
    "advisory": timedelta(hours=24),
    "soil": timedelta(days=7),
    "scheme": timedelta(days=7),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Query:
    """Normalized user submission."""

    original_text: str
    cleaned_text: str
    detected_language: str
    is_valid: bool
    error: str | None = None


@dataclass(frozen=True)
class Location:
    """State/district pair extracted from a query."""

    state: str | None = None
    district: str | None = None

    @property
    def key(self) -> str:
        return f"{self.state or '-'}/{self.district or '-'}"

    @property
    def display(self) -> str:
        parts = [part.title() for part in (self.district, self.state) if part]
        return ", ".join(parts) if parts else "your area"


@dataclass(frozen=True)
class Crop:
    """Crop mentioned in a query."""

    name: str
    season: Season = "perennial"


@dataclass(frozen=True)
class QueryContext:
    """Structured context derived once from a normalized query."""

    language: str
    location: Location | None = None
    crop: Crop | None = None
    query_type: FrozenSet[str] = field(default_factory=frozenset)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RetrievedDatum:
    """Payload produced by a data retrieval agent."""

    source_name: str
    type: DataType
    payload: Mapping[str, Any]
    confidence: float
    freshness: Freshness = "fresh"
    reliability: Reliability = "high"
    timestamp: datetime = field(default_factory=utcnow)
    location: Location | None = None
    crop: str | None = None
    cache_time: datetime | None = None


@dataclass(frozen=True)
class SourceReference:
    """Citation-ready projection of a retrieved datum."""

    source: str
    type: DataType
    confidence: float
    freshness: Freshness
    citation: str

    @classmethod
    def from_datum(cls, datum: RetrievedDatum) -> "SourceReference":
        citation = f"{datum.source_name} ({datum.timestamp.date().isoformat()})"
        if datum.location is not None and (datum.location.district or datum.location.state):
            citation += f" for {datum.location.display}"
        return cls(
            source=datum.source_name,
            type=datum.type,
            confidence=datum.confidence,
            freshness=datum.freshness,
            citation=citation,
        )


@dataclass(frozen=True)
class AdvisoryResponse:
    """Final answer handed to the UI and persistence collaborators."""

    query: str
    answer_text: str
    sources: Sequence[SourceReference]
    confidence: float
    factual_basis: FactualBasis
    language: str = "eng"
    detected_language: str = "eng"
    grounded: bool = False
    disclaimer: str | None = None
    generated_content: Sequence[str] = ()
