"""Advisory pipeline combining normalization, retrieval, grounding and generation."""

from __future__ import annotations

import random
import re
import time
from typing import List, Sequence

from krishisakha.config import Settings, get_settings
from krishisakha.metrics.observability import PipelineMetrics, get_logger
from krishisakha.models import AdvisoryResponse, FactualBasis, Query, QueryContext, RetrievedDatum, SourceReference
from krishisakha.nlp import extract_context, preprocess_query, require_valid
from krishisakha.retrieval import RetrievalCache, RetrievalOrchestrator, default_agents
from krishisakha.services.formatter import KISAN_CALL_CENTER, format_response
from krishisakha.services.generation import GenerationBackend, GenerationFailure, TemplateGenerationClient, build_generator
from krishisakha.services.grounding import GroundingAssessment, NeedsGrounding, assess, needs_grounding
from krishisakha.services.prompts import build_draft_prompt, build_grounded_prompt, insufficient_data_text

MEDIUM_BASIS_DISCLAIMER = (
    "This advice is based on available data, but please verify locally for your specific conditions."
)
LOW_BASIS_DISCLAIMER = (
    "This response is based on general agricultural knowledge. "
    "Please consult local experts for location-specific advice."
)
GENERATION_UNAVAILABLE_DISCLAIMER = (
    "The advisory service is temporarily unavailable, so this answer could not be generated. "
    "Please try again later or consult local experts."
)
SYSTEM_UNAVAILABLE_DISCLAIMER = (
    "Krishi Sakha is temporarily unavailable. This is general guidance only; "
    "please consult your local Krishi Vigyan Kendra for advice specific to your farm."
)
FALLBACK_GUIDANCE = (
    "- Use certified seeds suited to your region and season\n"
    "- Apply fertilizer based on soil test results\n"
    "- Monitor crops regularly for pests and diseases\n"
    "- Plan irrigation and spraying around the weather forecast\n"
    f"- Call the Kisan Call Center at {KISAN_CALL_CENTER} for free expert advice"
)
FALLBACK_CONFIDENCE = 0.3

GENERATIVE_PATTERNS: Sequence[re.Pattern[str]] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"generally speaking", r"in most cases", r"typically", r"usually", r"it is recommended")
)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")

# Short codes accepted from clients, mapped to detector codes.
LANGUAGE_ALIASES = {"en": "eng", "hi": "hin", "bn": "ben", "gu": "guj", "or": "ori", "od": "ori"}

BASIS_DISCLAIMERS = {"high": None, "medium": MEDIUM_BASIS_DISCLAIMER, "low": LOW_BASIS_DISCLAIMER}


class SystemUnavailable(RuntimeError):
    """Wraps an unexpected failure anywhere inside the pipeline."""


def resolve_language(requested: str | None, detected: str) -> str:
    if not requested:
        return detected
    requested = requested.strip().lower()
    return LANGUAGE_ALIASES.get(requested, requested)


def generated_sentences(text: str) -> List[str]:
    """Sentences phrased as general knowledge rather than retrieved fact."""

    return [
        sentence.strip()
        for sentence in _SENTENCE_SPLIT.split(text)
        if sentence.strip() and any(pattern.search(sentence) for pattern in GENERATIVE_PATTERNS)
    ]


class AdvisoryPipeline:
    """Turns a farmer's question into an :class:`AdvisoryResponse`."""

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        generator: GenerationBackend | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._generator = generator or TemplateGenerationClient()
        self._logger = get_logger("advisory")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AdvisoryPipeline":
        settings = settings or get_settings()
        cache = RetrievalCache(max_entries=settings.cache_max_entries)
        agents = default_agents(cache, rng=random.Random(settings.random_seed))
        orchestrator = RetrievalOrchestrator(
            agents,
            max_attempts=settings.retrieval_max_attempts,
            retry_delay=settings.retrieval_retry_delay_seconds,
        )
        return cls(orchestrator, build_generator(settings))

    async def advise(self, text: str, language: str | None = None) -> AdvisoryResponse:
        """Answer ``text``. Raises ``InvalidQuery`` only; every other failure degrades."""

        query = require_valid(preprocess_query(text))
        language = resolve_language(language, query.detected_language)
        start = time.perf_counter()
        try:
            response = await self._advise(query, language)
        except SystemUnavailable as failure:
            PipelineMetrics.pipeline_fallbacks.labels(reason="system_unavailable").inc()
            self._logger.error(
                "advice.failed",
                error=str(failure),
                error_type=failure.__cause__.__class__.__name__,
            )
            response = self._system_fallback(query, language)
        PipelineMetrics.observe_answer(response.confidence)
        self._logger.info(
            "advice.completed",
            language=response.language,
            source_count=len(response.sources),
            confidence=response.confidence,
            factual_basis=response.factual_basis,
            grounded=response.grounded,
            duration_seconds=time.perf_counter() - start,
        )
        return response

    async def _advise(self, query: Query, language: str) -> AdvisoryResponse:
        try:
            return await self._answer(query, language)
        except Exception as exc:
            raise SystemUnavailable(str(exc) or exc.__class__.__name__) from exc

    async def _answer(self, query: Query, language: str) -> AdvisoryResponse:
        context = extract_context(query.cleaned_text, language)
        data = await self._orchestrator.retrieve(context)
        assessment = assess(context, data)

        if assessment.needs_grounding is NeedsGrounding.YES and not assessment.has_data:
            return self._insufficient_data(query, context, assessment)

        draft = await self._generator.generate(build_draft_prompt(query.cleaned_text, language))
        if isinstance(draft, GenerationFailure):
            self._logger.warning("generation.draft_failed", reason=draft.reason)
            PipelineMetrics.pipeline_fallbacks.labels(reason="generation_failed").inc()
            return self._build(
                query,
                context,
                draft.text,
                assessment.relevant,
                confidence=min(assessment.confidence, FALLBACK_CONFIDENCE),
                basis="low",
                disclaimer=GENERATION_UNAVAILABLE_DISCLAIMER,
            )

        body = draft.text
        grounded = False
        if needs_grounding(context, draft.text) is NeedsGrounding.YES:
            if not assessment.has_data:
                return self._insufficient_data(query, context, assessment)
            revised = await self._generator.generate(
                build_grounded_prompt(query.cleaned_text, language, draft.text, assessment.relevant)
            )
            if isinstance(revised, GenerationFailure):
                self._logger.warning("generation.grounding_failed", reason=revised.reason)
            else:
                body = revised.text
                grounded = True

        return self._build(
            query,
            context,
            body,
            assessment.relevant,
            confidence=assessment.confidence,
            basis=assessment.factual_basis,
            disclaimer=BASIS_DISCLAIMERS[assessment.factual_basis],
            grounded=grounded,
        )

    def _insufficient_data(
        self,
        query: Query,
        context: QueryContext,
        assessment: GroundingAssessment,
    ) -> AdvisoryResponse:
        PipelineMetrics.pipeline_fallbacks.labels(reason="insufficient_data").inc()
        self._logger.info("advice.insufficient_data", has_location=context.location is not None)
        return self._build(
            query,
            context,
            insufficient_data_text(context),
            (),
            confidence=assessment.confidence,
            basis="low",
            disclaimer=LOW_BASIS_DISCLAIMER,
        )

    def _build(
        self,
        query: Query,
        context: QueryContext,
        body: str,
        data: Sequence[RetrievedDatum],
        *,
        confidence: float,
        basis: FactualBasis,
        disclaimer: str | None,
        grounded: bool = False,
    ) -> AdvisoryResponse:
        answer = format_response(query.original_text, body, context, data, confidence=confidence, basis=basis)
        return AdvisoryResponse(
            query=query.cleaned_text,
            answer_text=answer,
            sources=[SourceReference.from_datum(datum) for datum in data],
            confidence=confidence,
            factual_basis=basis,
            language=context.language,
            detected_language=query.detected_language,
            grounded=grounded,
            disclaimer=disclaimer,
            generated_content=generated_sentences(body),
        )

    @staticmethod
    def _system_fallback(query: Query, language: str) -> AdvisoryResponse:
        answer = f"**{query.original_text.strip()}**\n\n{FALLBACK_GUIDANCE}"
        return AdvisoryResponse(
            query=query.cleaned_text,
            answer_text=answer,
            sources=[],
            confidence=FALLBACK_CONFIDENCE,
            factual_basis="low",
            language=language,
            detected_language=query.detected_language,
            disclaimer=SYSTEM_UNAVAILABLE_DISCLAIMER,
        )


__all__ = [
    "AdvisoryPipeline",
    "LOW_BASIS_DISCLAIMER",
    "MEDIUM_BASIS_DISCLAIMER",
    "SystemUnavailable",
    "generated_sentences",
    "resolve_language",
]
