from __future__ import annotations

from datetime import datetime, timezone

from krishisakha.models import Location
from krishisakha.nlp import extract_context
from krishisakha.nlp.context import extract_crop, extract_location, extract_query_types


def test_wheat_prices_in_punjab():
    context = extract_context("wheat prices in punjab", "eng")
    assert context.location == Location(state="punjab", district=None)
    assert context.crop is not None and context.crop.name == "wheat"
    assert context.crop.season == "rabi"
    assert "market" in context.query_type
    assert "price" in context.query_type


def test_prices_does_not_match_rice():
    assert extract_crop("what are the prices today") is None


def test_district_infers_state():
    location = extract_location("rain forecast for ludhiana")
    assert location == Location(state="punjab", district="ludhiana")
    assert location.display == "Ludhiana, Punjab"


def test_first_match_wins_for_multiple_states():
    location = extract_location("compare bihar and punjab")
    assert location is not None and location.state == "bihar"


def test_missing_fields_are_empty():
    fixed = datetime(2024, 7, 1, tzinfo=timezone.utc)
    context = extract_context("how do i grow better", "eng", now=fixed)
    assert context.location is None
    assert context.crop is None
    assert context.query_type == frozenset()
    assert context.timestamp == fixed


def test_hindi_topic_keywords():
    assert extract_query_types("मौसम और मंडी भाव") >= {"weather", "market", "price"}


def test_scheme_and_subsidy_topics():
    assert extract_query_types("pm kisan scheme subsidy details") >= {"scheme", "subsidy"}
