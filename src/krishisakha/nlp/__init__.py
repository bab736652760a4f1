"""Rule-based query normalization and context extraction."""

from .context import extract_context
from .normalizer import InvalidQuery, detect_language, preprocess_query, require_valid

__all__ = [
    "InvalidQuery",
    "detect_language",
    "extract_context",
    "preprocess_query",
    "require_valid",
]
