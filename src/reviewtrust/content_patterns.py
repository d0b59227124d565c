"""
Cross-review content pattern analysis.
Delegates linguistic pattern detection (repeated phrasing, excessive positivity)
to an external classifier and validates its answer against the closed flag
schema. Any failure yields an empty red-flag list.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Dict

from pydantic import ValidationError

from .llm_adapter import ClassifierFallbackError, PatternClassifierClient
from .models import MAX_REVIEWS_PER_REQUEST, ContentAnalysis, RedFlag, Review

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at detecting fake review patterns. Analyze Amazon product "
    "reviews for authenticity indicators and suspicious patterns."
)

ANALYSIS_PROMPT_TEMPLATE = """
Analyze these Amazon product reviews:

{reviews_json}

Detect patterns across multiple reviews:
- phrase_repetition: Identical or very similar phrases used in multiple reviews
- excessive_positivity: Overly enthusiastic language without specific product details

Focus on patterns across the entire review set, not individual review quality.
Only reference review ids that appear above.
""".strip()

_CONFIDENCE_SCHEMA = {"type": "number", "minimum": 0, "maximum": 1}
_REVIEW_IDS_SCHEMA = {"type": "array", "items": {"type": "string"}}


def _flag_schema(flag_type: str, properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "type": {"type": "string", "enum": [flag_type]},
            "confidence": _CONFIDENCE_SCHEMA,
            "details": {
                "type": "object",
                "properties": properties,
                "required": list(properties),
                "additionalProperties": False,
            },
        },
        "required": ["type", "confidence", "details"],
        "additionalProperties": False,
    }


ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "redFlags": {
            "type": "array",
            "items": {
                "anyOf": [
                    _flag_schema(
                        "phrase_repetition",
                        {
                            "phrase": {"type": "string", "description": "The repeated phrase"},
                            "reviewIds": _REVIEW_IDS_SCHEMA,
                        },
                    ),
                    _flag_schema(
                        "excessive_positivity",
                        {
                            "reviewIds": _REVIEW_IDS_SCHEMA,
                            "keywords": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Common superlative keywords found",
                            },
                        },
                    ),
                ]
            },
        }
    },
    "required": ["redFlags"],
    "additionalProperties": False,
}


def build_analysis_prompt(reviews: Sequence[Review]) -> str:
    reviews_json = json.dumps(
        [review.model_dump(by_alias=True, exclude_none=True) for review in reviews],
        indent=2,
        ensure_ascii=False,
    )
    return ANALYSIS_PROMPT_TEMPLATE.format(reviews_json=reviews_json)


def parse_analysis(raw: str) -> ContentAnalysis:
    """Deserialize and validate classifier output; raises ValidationError.

    Strict mode: a quoted number or a boolean is rejected, not coerced.
    """
    return ContentAnalysis.model_validate_json(raw, strict=True)


class ContentPatternAnalyzer:
    """Fail-open wrapper around a PatternClassifierClient."""

    def __init__(
        self,
        client: PatternClassifierClient | None,
        *,
        max_reviews: int = MAX_REVIEWS_PER_REQUEST,
    ) -> None:
        self._client = client
        self._max_reviews = max_reviews

    @property
    def client(self) -> PatternClassifierClient | None:
        return self._client

    async def analyze(self, reviews: Sequence[Review]) -> ContentAnalysis:
        if self._client is None:
            logger.debug("Content pattern analysis skipped: no classifier configured")
            return ContentAnalysis(red_flags=[])
        if not reviews:
            return ContentAnalysis(red_flags=[])

        batch = list(reviews[: self._max_reviews])
        try:
            raw = await self._client.complete(
                SYSTEM_PROMPT,
                build_analysis_prompt(batch),
                ANALYSIS_RESPONSE_SCHEMA,
            )
            analysis = parse_analysis(raw)
        except ClassifierFallbackError as exc:
            logger.warning("Content pattern analysis unavailable: %s", exc)
            return ContentAnalysis(red_flags=[])
        except ValidationError as exc:
            logger.warning(
                "Content pattern analysis rejected: %d validation error(s): %s",
                exc.error_count(),
                str(exc)[:300],
            )
            return ContentAnalysis(red_flags=[])
        except Exception:
            logger.exception("Content pattern analysis failed")
            return ContentAnalysis(red_flags=[])

        red_flags = self._drop_unknown_references(analysis.red_flags, {review.id for review in reviews})
        logger.info(
            "Content pattern analysis complete: reviews=%d red_flags=%d",
            len(batch),
            len(red_flags),
        )
        return ContentAnalysis(red_flags=red_flags)

    @staticmethod
    def _drop_unknown_references(flags: Sequence[RedFlag], known_ids: set[str]) -> list[RedFlag]:
        kept: list[RedFlag] = []
        for flag in flags:
            unknown = [review_id for review_id in flag.details.review_ids if review_id not in known_ids]
            if unknown:
                logger.warning(
                    "Dropping %s flag referencing unknown review ids: %s",
                    flag.type,
                    unknown[:10],
                )
                continue
            kept.append(flag)
        return kept


async def analyze_content_patterns(
    reviews: Sequence[Review],
    client: PatternClassifierClient | None,
) -> ContentAnalysis:
    """Total entry point: never raises, returns no flags when the classifier is unavailable."""
    return await ContentPatternAnalyzer(client).analyze(reviews)
