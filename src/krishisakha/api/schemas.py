"""Pydantic models for the Krishi Sakha API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class AdviceRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000, description="Farmer's question in any supported language")
    language: Optional[str] = Field(
        default=None,
        description="Preferred answer language (eng, hin, ben, guj, ori or a short code such as hi)",
    )


class SourceModel(BaseModel):
    source: str
    type: Literal["weather", "market", "advisory", "soil", "scheme"]
    confidence: float = Field(..., ge=0.0, le=1.0)
    freshness: Literal["fresh", "cached", "stale"]
    citation: str


class AdviceResponse(BaseModel):
    query: str
    answer: str
    sources: List[SourceModel]
    confidence: float = Field(..., ge=0.0, le=1.0)
    factual_basis: Literal["high", "medium", "low"]
    language: str
    detected_language: str
    grounded: bool
    disclaimer: Optional[str] = None
    generated_content: List[str] = Field(default_factory=list)
    record_id: Optional[str] = Field(default=None, description="History record scheduled for this answer")


class HistoryItem(BaseModel):
    record_id: str
    query_text: str
    original_query_text: str
    detected_language: str
    language: str
    advice: str
    confidence: float
    factual_basis: str
    created_at: datetime


class HistoryResponse(BaseModel):
    items: List[HistoryItem]
