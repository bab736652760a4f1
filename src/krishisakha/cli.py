"""Command line entry point for asking Krishi Sakha a question."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from krishisakha.config import Settings, get_settings
from krishisakha.models import AdvisoryResponse
from krishisakha.nlp import InvalidQuery
from krishisakha.services.advisory import AdvisoryPipeline


def response_to_dict(response: AdvisoryResponse) -> dict:
    return {
        "query": response.query,
        "answer": response.answer_text,
        "confidence": response.confidence,
        "factual_basis": response.factual_basis,
        "language": response.language,
        "detected_language": response.detected_language,
        "grounded": response.grounded,
        "disclaimer": response.disclaimer,
        "generated_content": list(response.generated_content),
        "sources": [
            {
                "source": source.source,
                "type": source.type,
                "confidence": source.confidence,
                "freshness": source.freshness,
                "citation": source.citation,
            }
            for source in response.sources
        ],
    }


def ask(question: str, *, language: str | None = None, settings: Settings | None = None) -> AdvisoryResponse:
    pipeline = AdvisoryPipeline.from_settings(settings or get_settings())
    return asyncio.run(pipeline.advise(question, language=language))


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask Krishi Sakha an agricultural question.")
    parser.add_argument("question", help="Question in English, Hindi, Hinglish, Bengali, Gujarati or Odia")
    parser.add_argument("--language", type=str, default=None, help="Preferred answer language, e.g. hi or eng")
    parser.add_argument("--json", action="store_true", help="Print the full response as JSON")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        response = ask(args.question, language=args.language)
    except InvalidQuery as exc:
        print(exc.message, file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(response_to_dict(response), indent=2, ensure_ascii=False))
        return 0
    print(response.answer_text)
    if response.disclaimer:
        print(f"\nNote: {response.disclaimer}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
