"""Service layer orchestrations for Krishi Sakha."""

from .advisory import AdvisoryPipeline, SystemUnavailable
from .generation import (
    GeminiGenerationClient,
    GenerationBackend,
    GenerationConfig,
    GenerationFailure,
    GenerationSuccess,
    TemplateGenerationClient,
)
from .grounding import GroundingAssessment, NeedsGrounding

__all__ = [
    "AdvisoryPipeline",
    "GeminiGenerationClient",
    "GenerationBackend",
    "GenerationConfig",
    "GenerationFailure",
    "GenerationSuccess",
    "GroundingAssessment",
    "NeedsGrounding",
    "SystemUnavailable",
    "TemplateGenerationClient",
]
