"""Prompt construction for the draft and grounded generation passes."""

from __future__ import annotations

from typing import Callable, List, Mapping, Sequence

from krishisakha.models import QueryContext, RetrievedDatum
from krishisakha.nlp.normalizer import LANGUAGE_NAMES

HINDI_LANGUAGES = frozenset({"hin", "hin-rom"})

ENGLISH_DRAFT_TEMPLATE = """You are Krishi Sakha, an expert agricultural advisor for Indian farmers.

FARMER'S QUESTION: {question}

INSTRUCTIONS:
1. {language_instruction}
2. Give practical, implementable advice suitable for Indian climate and soil conditions
3. Consider local crops, seasonal patterns and the resource constraints of small farmers
4. Keep the advice under 150 words and use bullet points where helpful

RESPONSE:"""

HINDI_DRAFT_TEMPLATE = """आप कृषि सखा हैं, भारतीय किसानों के लिए एक विशेषज्ञ कृषि सलाहकार।

किसान का प्रश्न: {question}

निर्देश:
1. {language_instruction}
2. भारतीय जलवायु और मिट्टी के अनुसार व्यावहारिक सलाह दें
3. स्थानीय फसलों, मौसम और छोटे किसानों के संसाधनों का ध्यान रखें
4. सलाह 150 शब्दों से कम रखें और जहाँ उपयोगी हो बिंदुओं में लिखें

उत्तर:"""

ENGLISH_GROUNDED_TEMPLATE = """You are Krishi Sakha, an expert agricultural advisor for Indian farmers. Use the verified data provided below to improve the draft answer to the farmer's question.

{factual_context}
FARMER'S QUESTION: {question}

DRAFT ANSWER:
{draft}

INSTRUCTIONS:
1. Use ONLY the verified data provided above to support specific facts
2. {language_instruction}
3. Be specific and practical in your recommendations
4. If the data doesn't fully address the question, clearly state what information is verified vs. general knowledge
5. Always mention data sources when citing specific facts
6. If location-specific data is available, prioritize it over general information
7. Format your response clearly with bullet points or numbered lists when appropriate

RESPONSE:"""

HINDI_GROUNDED_TEMPLATE = """आप कृषि सखा हैं, भारतीय किसानों के लिए एक विशेषज्ञ कृषि सलाहकार। नीचे दिए गए सत्यापित आँकड़ों का उपयोग करके किसान के प्रश्न के प्रारूप उत्तर को बेहतर बनाइए।

{factual_context}
किसान का प्रश्न: {question}

प्रारूप उत्तर:
{draft}

निर्देश:
1. विशिष्ट तथ्यों के लिए केवल ऊपर दिए गए सत्यापित आँकड़ों का उपयोग करें
2. {language_instruction}
3. सत्यापित जानकारी और सामान्य ज्ञान को स्पष्ट रूप से अलग बताएं
4. तथ्य बताते समय आँकड़ों के स्रोत का उल्लेख करें
5. उत्तर को बिंदुओं या क्रमांकित सूची में लिखें

उत्तर:"""


def language_instruction(language: str) -> str:
    if language in HINDI_LANGUAGES:
        return "उत्तर सरल हिंदी (देवनागरी लिपि) में दें जिसे किसान आसानी से समझ सकें।"
    if language == "eng":
        return "Respond in clear, simple English suitable for farmers."
    name = LANGUAGE_NAMES.get(language, language)
    return f"Respond in {name} language, using simple terms that farmers can understand."


def build_draft_prompt(question: str, language: str) -> str:
    template = HINDI_DRAFT_TEMPLATE if language in HINDI_LANGUAGES else ENGLISH_DRAFT_TEMPLATE
    return template.format(question=question, language_instruction=language_instruction(language))


def build_grounded_prompt(
    question: str,
    language: str,
    draft: str,
    data: Sequence[RetrievedDatum],
) -> str:
    template = HINDI_GROUNDED_TEMPLATE if language in HINDI_LANGUAGES else ENGLISH_GROUNDED_TEMPLATE
    return template.format(
        factual_context=build_factual_context(data),
        question=question,
        draft=draft,
        language_instruction=language_instruction(language),
    )


def _weather_lines(payload: Mapping) -> List[str]:
    lines = []
    for label, key, unit in (
        ("Temperature", "temperature", "°C"),
        ("Humidity", "humidity", "%"),
        ("Rainfall", "rainfall", "mm"),
        ("Wind Speed", "wind_speed", " km/h"),
    ):
        if key in payload:
            lines.append(f"{label}: {payload[key]}{unit}")
    if payload.get("description"):
        lines.append(f"Conditions: {payload['description']}")
    forecast = payload.get("forecast") or []
    if forecast:
        lines.append("3-day forecast:")
        lines.extend(
            f"  {day['day']}: {day['temp']}°C, {day['condition']}, Rain: {day['rain']}%" for day in forecast
        )
    return lines


def _market_lines(payload: Mapping) -> List[str]:
    lines = [f"Market: {payload.get('location', '')}", f"Date: {payload.get('date', '')}"]
    prices = payload.get("prices") or []
    lines.extend(
        f"{price['crop']}: ₹{price['min_price']}-{price['max_price']} "
        f"(Modal: ₹{price['modal_price']}) {price['unit']} at {price['market']}"
        for price in prices
    )
    if not prices and payload.get("requested_crop"):
        lines.append(f"No price data for {payload['requested_crop']}")
        if payload.get("alternatives"):
            lines.append(f"Prices available for: {', '.join(payload['alternatives'])}")
    lines.append(f"Price Trend: {payload.get('trend', 'unknown')}")
    return lines


def _advisory_lines(payload: Mapping) -> List[str]:
    lines = []
    for index, advisory in enumerate(payload.get("advisories") or [], start=1):
        lines.append(f"Advisory {index}: {advisory['title']}")
        lines.append(f"Content: {advisory['content']}")
        lines.append(f"Priority: {advisory['priority']}")
        lines.append(f"Source: {advisory['source']}")
    return lines


def _soil_lines(payload: Mapping) -> List[str]:
    lines = [
        f"Soil Type: {payload.get('soil_type')}",
        f"pH: {payload.get('ph')}",
        f"Organic Carbon: {payload.get('organic_carbon')}%",
        f"Nitrogen: {payload.get('nitrogen')}",
        f"Phosphorus: {payload.get('phosphorus')}",
        f"Potassium: {payload.get('potassium')}",
    ]
    recommendations = payload.get("recommendations") or []
    if recommendations:
        lines.append("Recommendations:")
        lines.extend(f"  - {item}" for item in recommendations)
    return lines


def _scheme_lines(payload: Mapping) -> List[str]:
    lines = []
    if payload.get("state"):
        lines.append(f"State: {payload['state']}")
    for scheme in payload.get("schemes") or []:
        lines.append(f"Scheme: {scheme['name']}")
        lines.append(f"Description: {scheme['description']}")
        lines.append(f"Eligibility: {scheme['eligibility']}")
        lines.append(f"Benefit: {scheme['benefit']}")
        lines.append(f"Application: {scheme['application_process']}")
    return lines


PAYLOAD_SERIALIZERS: Mapping[str, Callable[[Mapping], List[str]]] = {
    "weather": _weather_lines,
    "market": _market_lines,
    "advisory": _advisory_lines,
    "soil": _soil_lines,
    "scheme": _scheme_lines,
}


def serialize_datum(datum: RetrievedDatum) -> str:
    lines = [
        f"## {datum.type.upper()} DATA - {datum.source_name}",
        f"Confidence: {datum.confidence * 100:.0f}%",
        f"Freshness: {datum.freshness}",
    ]
    if datum.location is not None:
        lines.append(f"Location: {datum.location.display}")
    lines.extend(PAYLOAD_SERIALIZERS[datum.type](datum.payload))
    return "\n".join(lines)


def build_factual_context(data: Sequence[RetrievedDatum]) -> str:
    blocks = ["CURRENT VERIFIED DATA:"]
    blocks.extend(serialize_datum(datum) for datum in data)
    return "\n\n".join(blocks) + "\n"


def suggested_questions(context: QueryContext) -> List[str]:
    place = context.location.display if context.location is not None else "my district"
    crop = context.crop.name if context.crop is not None else "wheat"
    return [
        f"What is the weather forecast for {place}?",
        f"What are today's {crop} prices in {place}?",
        f"Which fertilizer should I use for {crop} in {place}?",
        f"Which government schemes can farmers in {place} apply for?",
    ]


def insufficient_data_text(context: QueryContext) -> str:
    """Canned answer used when grounding is required but nothing was retrieved."""

    if context.location is not None:
        opening = (
            f"I could not find verified agricultural data for {context.location.display} "
            "to answer this question reliably."
        )
    else:
        opening = (
            "I could not find verified agricultural data for this question. "
            "Mentioning your district or state helps me find local information."
        )
    lines = [opening, "", "Here are some questions you could ask instead:"]
    lines.extend(f"- {item}" for item in suggested_questions(context))
    return "\n".join(lines)


__all__ = [
    "build_draft_prompt",
    "build_factual_context",
    "build_grounded_prompt",
    "insufficient_data_text",
    "language_instruction",
    "serialize_datum",
    "suggested_questions",
]
