"""Keyword-table extraction of location, crop and topic from a cleaned query."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from krishisakha.models import Crop, Location, QueryContext, utcnow

DISTRICT_STATES: Mapping[str, str] = {
    "allahabad": "uttar pradesh",
    "prayagraj": "uttar pradesh",
    "lucknow": "uttar pradesh",
    "kanpur": "uttar pradesh",
    "varanasi": "uttar pradesh",
    "agra": "uttar pradesh",
    "meerut": "uttar pradesh",
    "patna": "bihar",
    "gaya": "bihar",
    "muzaffarpur": "bihar",
    "pune": "maharashtra",
    "mumbai": "maharashtra",
    "nashik": "maharashtra",
    "nagpur": "maharashtra",
    "bangalore": "karnataka",
    "mysore": "karnataka",
    "hubli": "karnataka",
    "chennai": "tamil nadu",
    "coimbatore": "tamil nadu",
    "madurai": "tamil nadu",
    "hyderabad": "telangana",
    "warangal": "telangana",
    "visakhapatnam": "andhra pradesh",
    "guntur": "andhra pradesh",
    "ludhiana": "punjab",
    "amritsar": "punjab",
    "karnal": "haryana",
    "hisar": "haryana",
    "jaipur": "rajasthan",
    "indore": "madhya pradesh",
    "bhopal": "madhya pradesh",
    "ahmedabad": "gujarat",
    "rajkot": "gujarat",
    "kolkata": "west bengal",
    "cuttack": "odisha",
    "thrissur": "kerala",
}

DISTRICTS: Sequence[str] = tuple(DISTRICT_STATES)

STATES: Sequence[str] = (
    "uttar pradesh",
    "bihar",
    "maharashtra",
    "karnataka",
    "tamil nadu",
    "telangana",
    "andhra pradesh",
    "punjab",
    "haryana",
    "rajasthan",
    "madhya pradesh",
    "gujarat",
    "west bengal",
    "odisha",
    "kerala",
    "assam",
    "chhattisgarh",
    "jharkhand",
    "uttarakhand",
    "himachal pradesh",
)

CROP_SEASONS: Mapping[str, str] = {
    "paddy": "kharif",
    "rice": "kharif",
    "wheat": "rabi",
    "maize": "kharif",
    "cotton": "kharif",
    "sugarcane": "perennial",
    "soybean": "kharif",
    "mustard": "rabi",
    "gram": "rabi",
    "arhar": "kharif",
    "moong": "zaid",
    "urad": "kharif",
    "groundnut": "kharif",
    "sunflower": "zaid",
    "sesame": "kharif",
    "potato": "rabi",
    "onion": "rabi",
    "tomato": "rabi",
    "bajra": "kharif",
    "jowar": "kharif",
    "barley": "rabi",
}

CROPS: Sequence[str] = tuple(CROP_SEASONS)

# Ordered (keywords, query type) rules; every matching rule contributes its type.
TOPIC_RULES: Sequence[tuple[tuple[str, ...], str]] = (
    (("weather", "rain", "temperature", "forecast", "monsoon", "mausam", "barish", "मौसम", "बारिश"), "weather"),
    (("market", "mandi", "price", "rate", "bhav", "sell", "मंडी", "भाव"), "market"),
    (("price", "rate", "bhav", "cost", "भाव", "दाम"), "price"),
    (("soil", "mitti", "मिट्टी"), "soil"),
    (("fertilizer", "urea", "dap", "npk", "manure", "compost", "खाद"), "fertilizer"),
    (("scheme", "yojana", "pm kisan", "pm-kisan", "pmfby", "योजना"), "scheme"),
    (("subsidy", "loan", "insurance", "credit", "सब्सिडी"), "subsidy"),
    (("pest", "insect", "disease", "pesticide", "कीट"), "pest"),
    (("irrigation", "water", "drip", "sprinkler", "पानी"), "irrigation"),
)


def _mentions(text: str, keyword: str) -> bool:
    # Latin keywords must start a word so "prices" does not yield "rice"; plural
    # and derived forms still match.
    if keyword.isascii():
        return re.search(rf"\b{re.escape(keyword)}", text) is not None
    return keyword in text


def _first_match(text: str, candidates: Iterable[str]) -> str | None:
    for candidate in candidates:
        if _mentions(text, candidate):
            return candidate
    return None


def extract_location(text: str) -> Location | None:
    lowered = text.lower()
    district = _first_match(lowered, DISTRICTS)
    state = _first_match(lowered, STATES)
    if district and not state:
        state = DISTRICT_STATES.get(district)
    if not district and not state:
        return None
    return Location(state=state, district=district)


def extract_crop(text: str) -> Crop | None:
    name = _first_match(text.lower(), CROPS)
    if name is None:
        return None
    return Crop(name=name, season=CROP_SEASONS[name])  # type: ignore[arg-type]


def extract_query_types(text: str) -> frozenset[str]:
    lowered = text.lower()
    return frozenset(
        query_type
        for keywords, query_type in TOPIC_RULES
        if _first_match(lowered, keywords) is not None
    )


def extract_context(cleaned_text: str, language: str, *, now: datetime | None = None) -> QueryContext:
    """Build the structured context for a query. Missing fields stay empty."""

    return QueryContext(
        language=language,
        location=extract_location(cleaned_text),
        crop=extract_crop(cleaned_text),
        query_type=extract_query_types(cleaned_text),
        timestamp=now or utcnow(),
    )
