from __future__ import annotations

from krishisakha.models import Location, QueryContext, RetrievedDatum
from krishisakha.services.prompts import (
    build_draft_prompt,
    build_factual_context,
    build_grounded_prompt,
    insufficient_data_text,
)


def test_english_draft_prompt_contains_question():
    prompt = build_draft_prompt("when to sow wheat", "eng")
    assert "FARMER'S QUESTION: when to sow wheat" in prompt
    assert "simple English" in prompt


def test_hindi_template_for_hindi_and_hinglish():
    for language in ("hin", "hin-rom"):
        prompt = build_draft_prompt("गेहूं कब बोएं", language)
        assert "किसान का प्रश्न: गेहूं कब बोएं" in prompt
        assert "देवनागरी" in prompt


def test_other_languages_use_english_template_with_language_name():
    prompt = build_draft_prompt("ধান চাষ", "ben")
    assert "Respond in Bengali language" in prompt


def test_market_serialization(punjab):
    datum = RetrievedDatum(
        source_name="AGMARKNET",
        type="market",
        payload={
            "location": "Ludhiana, Punjab",
            "date": "2024-11-15",
            "prices": [
                {
                    "crop": "Wheat",
                    "min_price": 2100,
                    "max_price": 2500,
                    "modal_price": 2300,
                    "unit": "per quintal",
                    "market": "Ludhiana APMC",
                }
            ],
            "trend": "stable",
        },
        confidence=0.85,
        location=punjab,
    )
    context = build_factual_context([datum])
    assert context.startswith("CURRENT VERIFIED DATA:")
    assert "## MARKET DATA - AGMARKNET" in context
    assert "Confidence: 85%" in context
    assert "Wheat: ₹2100-2500 (Modal: ₹2300) per quintal" in context
    assert "Price Trend: stable" in context


def test_grounded_prompt_carries_draft_and_data(punjab):
    datum = RetrievedDatum(
        source_name="Soil Health Card Program",
        type="soil",
        payload={"soil_type": "Alluvial", "ph": 7.1, "recommendations": ["Add FYM"]},
        confidence=0.85,
        location=punjab,
    )
    prompt = build_grounded_prompt("soil for wheat", "eng", "Use compost.", [datum])
    assert "DRAFT ANSWER:\nUse compost." in prompt
    assert "Soil Type: Alluvial" in prompt
    assert "  - Add FYM" in prompt


def test_insufficient_data_suggests_location_questions():
    context = QueryContext(language="eng", location=Location(state="bihar", district="patna"))
    text = insufficient_data_text(context)
    assert "Patna, Bihar" in text
    assert "questions you could ask instead" in text
    assert "What is the weather forecast for Patna, Bihar?" in text


def test_insufficient_data_without_location_asks_for_one():
    text = insufficient_data_text(QueryContext(language="eng"))
    assert "district or state" in text
