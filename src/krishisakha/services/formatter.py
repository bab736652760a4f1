"""Renders advice text and retrieved data into the fixed answer layout."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from krishisakha.models import FactualBasis, QueryContext, RetrievedDatum, SourceReference

KISAN_CALL_CENTER = "1800-180-1551"

GENERAL_TIPS: Sequence[str] = (
    "Check the weather forecast before spraying or irrigating.",
    "Test your soil every 2-3 years and follow Soil Health Card recommendations.",
    "Compare prices at nearby mandis before selling your produce.",
    "Contact your local Krishi Vigyan Kendra for field-level guidance.",
)

_BULLET = re.compile(r"^\s*(?:[-*•·]|\d+[.)])\s+")


def normalize_bullets(text: str) -> str:
    lines = []
    for line in text.strip().splitlines():
        if _BULLET.match(line):
            line = _BULLET.sub("- ", line)
        lines.append(line.rstrip())
    return "\n".join(lines)


def _of_type(data: Iterable[RetrievedDatum], data_type: str) -> List[RetrievedDatum]:
    return [datum for datum in data if datum.type == data_type]


def _weather_section(data: Sequence[RetrievedDatum]) -> List[str]:
    lines = ["### Weather"]
    for datum in data:
        payload = datum.payload
        if "temperature" in payload:
            lines.append(
                f"- {payload.get('location', '')}: {payload['temperature']}°C, "
                f"humidity {payload.get('humidity')}%, rainfall {payload.get('rainfall')}mm"
            )
        if payload.get("description"):
            lines.append(f"- Conditions: {payload['description']}")
        for day in payload.get("forecast") or []:
            lines.append(f"- {day['day']}: {day['temp']}°C, {day['condition']}, rain {day['rain']}%")
    return lines


def _market_section(data: Sequence[RetrievedDatum], context: QueryContext) -> List[str]:
    lines = ["### Market Prices"]
    prices = [price for datum in data for price in datum.payload.get("prices") or []]
    for price in prices:
        lines.append(
            f"- {price['crop']}: ₹{price['min_price']}-{price['max_price']} "
            f"(modal ₹{price['modal_price']}) {price['unit']}, {price['market']}"
        )
    if prices:
        trend = data[0].payload.get("trend")
        if trend:
            lines.append(f"- Price trend: {trend}")
        return lines
    subject = f"{context.crop.name} " if context.crop is not None else ""
    place = f" in {context.location.display}" if context.location is not None else ""
    lines.append(f"- Market price data for {subject}is currently unavailable{place}.")
    alternatives = [name for datum in data for name in datum.payload.get("alternatives") or []]
    if alternatives:
        lines.append(f"- Prices are available for: {', '.join(alternatives)}.")
    return lines


def _soil_section(data: Sequence[RetrievedDatum]) -> List[str]:
    lines = ["### Soil Health"]
    for datum in data:
        payload = datum.payload
        lines.append(
            f"- {payload.get('soil_type')} soil, pH {payload.get('ph')}, "
            f"organic carbon {payload.get('organic_carbon')}%"
        )
        lines.append(
            f"- Nitrogen {payload.get('nitrogen')}, phosphorus {payload.get('phosphorus')}, "
            f"potassium {payload.get('potassium')}"
        )
        lines.extend(f"- {item}" for item in payload.get("recommendations") or [])
    return lines


def _advisory_section(data: Sequence[RetrievedDatum]) -> List[str]:
    lines = ["### Advisories"]
    for datum in data:
        for advisory in datum.payload.get("advisories") or []:
            lines.append(f"- **{advisory['title']}** ({advisory['priority']}): {advisory['content']}")
    return lines


def _scheme_section(data: Sequence[RetrievedDatum]) -> List[str]:
    lines = ["### Government Schemes"]
    for datum in data:
        for scheme in datum.payload.get("schemes") or []:
            lines.append(f"- **{scheme['name']}**: {scheme['benefit']}. Apply: {scheme['application_process']}")
    return lines


def _tips_section() -> List[str]:
    lines = ["### Tips"]
    lines.extend(f"- {tip}" for tip in GENERAL_TIPS)
    lines.append(f"- Kisan Call Center (toll free): {KISAN_CALL_CENTER}")
    return lines


def _transparency_section(
    data: Sequence[RetrievedDatum],
    confidence: float,
    basis: FactualBasis,
) -> List[str]:
    fresh = sum(1 for datum in data if datum.freshness == "fresh")
    cached = sum(1 for datum in data if datum.freshness == "cached")
    stale = len(data) - fresh - cached
    lines = [
        "### How this answer was generated",
        f"- Sources consulted: {len(data)} ({fresh} fresh, {cached} cached, {stale} stale)",
        f"- Confidence: {confidence * 100:.0f}%",
        f"- Factual basis: {basis}",
    ]
    if data:
        lines.append("- Citations:")
        lines.extend(f"  - {SourceReference.from_datum(datum).citation}" for datum in data)
    else:
        lines.append("- No live data was used; this answer relies on general agricultural knowledge.")
    return lines


def format_response(
    original_query: str,
    body: str,
    context: QueryContext,
    data: Sequence[RetrievedDatum],
    *,
    confidence: float,
    basis: FactualBasis,
) -> str:
    """Render the final answer text in fixed section order."""

    blocks: List[List[str]] = [[f"**{original_query.strip()}**"], [normalize_bullets(body)]]
    weather = _of_type(data, "weather")
    if weather:
        blocks.append(_weather_section(weather))
    blocks.append(_market_section(_of_type(data, "market"), context))
    soil = _of_type(data, "soil")
    if soil:
        blocks.append(_soil_section(soil))
    advisories = _of_type(data, "advisory")
    if advisories:
        blocks.append(_advisory_section(advisories))
    schemes = _of_type(data, "scheme")
    if schemes:
        blocks.append(_scheme_section(schemes))
    blocks.append(_tips_section())
    blocks.append(_transparency_section(data, confidence, basis))
    return "\n\n".join("\n".join(block) for block in blocks)


__all__ = ["KISAN_CALL_CENTER", "format_response", "normalize_bullets"]
