"""Grounding policy, confidence scoring and factual-basis labelling."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from krishisakha.models import FactualBasis, QueryContext, RetrievedDatum

GROUNDING_TOPICS = frozenset({"weather", "market", "price", "scheme"})
TIME_SENSITIVE_MARKERS = ("current", "latest", "today")

BASE_CONFIDENCE = 0.5
FRESHNESS_WEIGHT = 0.30
CROP_MATCH_BONUS = 0.15
LOCATION_MATCH_BONUS = 0.10
DIVERSITY_STEP = 0.05
DIVERSITY_CAP = 0.20
MAX_CONFIDENCE = 0.95


class NeedsGrounding(str, Enum):
    YES = "yes"
    NO = "no"


@dataclass(frozen=True)
class GroundingAssessment:
    """Outcome of assessing retrieved data against a query context."""

    needs_grounding: NeedsGrounding
    confidence: float
    factual_basis: FactualBasis
    relevant: Sequence[RetrievedDatum]

    @property
    def has_data(self) -> bool:
        return bool(self.relevant)


def needs_grounding(context: QueryContext, draft: str | None = None) -> NeedsGrounding:
    if context.location is not None or context.crop is not None:
        return NeedsGrounding.YES
    if context.query_type & GROUNDING_TOPICS:
        return NeedsGrounding.YES
    lowered = (draft or "").lower()
    if any(marker in lowered for marker in TIME_SENSITIVE_MARKERS):
        return NeedsGrounding.YES
    return NeedsGrounding.NO


def _crop_matches(context: QueryContext, datum: RetrievedDatum) -> bool:
    if context.crop is None:
        return False
    if datum.crop == context.crop.name:
        return True
    return datum.type == "market" and datum.payload.get("requested_crop") == context.crop.name


def _location_matches(context: QueryContext, datum: RetrievedDatum) -> bool:
    return context.location is not None and datum.location == context.location


def score_confidence(context: QueryContext, data: Sequence[RetrievedDatum]) -> float:
    """Heuristic confidence in [0, 0.95] for an answer backed by ``data``."""

    score = BASE_CONFIDENCE
    if data:
        fresh = sum(1 for datum in data if datum.freshness == "fresh")
        score += FRESHNESS_WEIGHT * fresh / len(data)
    if context.crop is not None and any(
        datum.type == "market" and datum.payload.get("requested_crop") == context.crop.name for datum in data
    ):
        score += CROP_MATCH_BONUS
    if any(_location_matches(context, datum) for datum in data):
        score += LOCATION_MATCH_BONUS
    score += min(DIVERSITY_CAP, DIVERSITY_STEP * len({datum.type for datum in data}))
    return max(0.0, min(MAX_CONFIDENCE, score))


def factual_basis(data: Sequence[RetrievedDatum]) -> FactualBasis:
    fresh = sum(1 for datum in data if datum.freshness == "fresh")
    if fresh >= 2:
        return "high"
    if len(data) >= 2:
        return "medium"
    return "low"


def rank_relevant(context: QueryContext, data: Sequence[RetrievedDatum]) -> list[RetrievedDatum]:
    """Move crop or location matches to the front. Nothing is dropped."""

    return sorted(
        data,
        key=lambda datum: not (_crop_matches(context, datum) or _location_matches(context, datum)),
    )


def assess(
    context: QueryContext,
    data: Sequence[RetrievedDatum],
    draft: str | None = None,
) -> GroundingAssessment:
    return GroundingAssessment(
        needs_grounding=needs_grounding(context, draft),
        confidence=score_confidence(context, data),
        factual_basis=factual_basis(data),
        relevant=rank_relevant(context, data),
    )


__all__ = [
    "GroundingAssessment",
    "NeedsGrounding",
    "assess",
    "factual_basis",
    "needs_grounding",
    "rank_relevant",
    "score_confidence",
]
