"""Generation backends for Krishi Sakha."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Union

import httpx

from krishisakha.config import Settings
from krishisakha.metrics.observability import PipelineMetrics

LOGGER = logging.getLogger(__name__)

APOLOGY_TEXT = "I apologize, but I cannot provide advice at the moment. Please try again later."

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")
_QUESTION_LINE = re.compile(r"^(?:FARMER'S QUESTION|किसान का प्रश्न):\s*(.+)$", re.MULTILINE)


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for the hosted generation service."""

    endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"
    model: str = "gemini-2.0-flash-exp"
    api_key: str | None = None
    temperature: float = 0.7
    max_output_tokens: int = 500
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationConfig":
        return cls(
            endpoint=settings.generator_endpoint,
            model=settings.generator_model,
            api_key=settings.generator_api_key,
            temperature=settings.generator_temperature,
            max_output_tokens=settings.generator_max_output_tokens,
            timeout_seconds=settings.generator_timeout_seconds,
        )


@dataclass(frozen=True)
class GenerationSuccess:
    text: str


@dataclass(frozen=True)
class GenerationFailure:
    reason: str
    text: str = APOLOGY_TEXT


GenerationResult = Union[GenerationSuccess, GenerationFailure]


class GenerationBackend(Protocol):
    """Protocol describing generation behaviour."""

    async def generate(self, prompt: str) -> GenerationResult:
        """Return generated text, or a failure carrying the apology text."""


def unwrap_reply(text: str) -> str:
    """Return the ``advice`` field of JSON replies; plain text passes through."""

    candidate = _CODE_FENCE.sub("", text.strip())
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return text.strip()
    if not isinstance(parsed, dict) or not parsed.get("advice"):
        return text.strip()
    advice = str(parsed["advice"]).strip()
    explanation = str(parsed.get("explanation") or "").strip()
    return f"{advice}\n\n{explanation}" if explanation else advice


class TemplateGenerationClient:
    """Deterministic generator used for tests and offline environments."""

    async def generate(self, prompt: str) -> GenerationResult:
        match = _QUESTION_LINE.search(prompt)
        question = match.group(1).strip() if match else "your question"
        if "CURRENT VERIFIED DATA" in prompt:
            return GenerationSuccess(
                f"Based on the verified data for your area, here is guidance for '{question}':\n"
                "- Follow the local advisories listed below\n"
                "- Plan field work around the weather forecast\n"
                "- Check mandi prices before selling"
            )
        return GenerationSuccess(
            f"General guidance for '{question}':\n"
            "- Use certified seeds and balanced fertilizer doses\n"
            "- Irrigate according to crop stage and soil moisture\n"
            "- Consult your local Krishi Vigyan Kendra for specific problems"
        )


class GeminiGenerationClient:
    """Generator that calls the hosted Gemini ``generateContent`` API over HTTP."""

    def __init__(self, config: GenerationConfig | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._config = config or GenerationConfig()
        self._client = client

    def _url(self) -> str:
        return f"{self._config.endpoint.rstrip('/')}/{self._config.model}:generateContent"

    def _body(self, prompt: str) -> Mapping[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._config.temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": self._config.max_output_tokens,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
                for category in (
                    "HARM_CATEGORY_HARASSMENT",
                    "HARM_CATEGORY_HATE_SPEECH",
                    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
                    "HARM_CATEGORY_DANGEROUS_CONTENT",
                )
            ],
        }

    async def generate(self, prompt: str) -> GenerationResult:
        start = time.perf_counter()
        result = await self._call(prompt)
        PipelineMetrics.observe_generation(
            time.perf_counter() - start,
            failed=isinstance(result, GenerationFailure),
        )
        return result

    async def _call(self, prompt: str) -> GenerationResult:
        if not self._config.api_key:
            return GenerationFailure("missing_api_key")
        try:
            if self._client is not None:
                response = await self._post(self._client, prompt)
            else:
                async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                    response = await self._post(client, prompt)
        except httpx.HTTPError as exc:
            LOGGER.warning("Generation request failed: %s", exc)
            return GenerationFailure(f"transport: {exc.__class__.__name__}")
        if response.status_code >= 400:
            LOGGER.warning("Generation service returned status %s", response.status_code)
            return GenerationFailure(f"status: {response.status_code}")
        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            LOGGER.warning("Generation service returned a malformed body")
            return GenerationFailure("malformed_response")
        if not isinstance(text, str) or not text.strip():
            return GenerationFailure("empty_response")
        return GenerationSuccess(unwrap_reply(text))

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> httpx.Response:
        return await client.post(
            self._url(),
            params={"key": self._config.api_key},
            json=self._body(prompt),
            timeout=self._config.timeout_seconds,
        )


def build_generator(settings: Settings) -> GenerationBackend:
    if settings.generator_enabled:
        LOGGER.info("Using hosted generation model %s", settings.generator_model)
        return GeminiGenerationClient(GenerationConfig.from_settings(settings))
    LOGGER.info("Generation running in template-only mode.")
    return TemplateGenerationClient()


__all__ = [
    "APOLOGY_TEXT",
    "GeminiGenerationClient",
    "GenerationBackend",
    "GenerationConfig",
    "GenerationFailure",
    "GenerationResult",
    "GenerationSuccess",
    "TemplateGenerationClient",
    "build_generator",
    "unwrap_reply",
]
