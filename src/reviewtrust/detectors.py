"""
Local flag detectors.
Fast, deterministic checks over a review batch that never leave the process.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from .models import (
    FlagAnalysis,
    HighVerifiedPurchasesDetails,
    HighVerifiedPurchasesFlag,
    Review,
    ReviewBombingDetails,
    ReviewBombingFlag,
)

MINIMUM_REVIEWS_FOR_BOMBING = 4
BOMBING_HOURS_SPAN = 24  # same date string is treated as the same day
VERIFIED_PURCHASE_THRESHOLD = 70

VERIFIED_CONFIDENCE_BANDS = (
    (90, 0.95),
    (85, 0.85),
    (80, 0.75),
    (75, 0.65),
)
VERIFIED_BASE_CONFIDENCE = 0.55


def detect_review_bombing(reviews: Sequence[Review]) -> list[ReviewBombingFlag]:
    """Flag every posting date that carries an abnormally large cluster of reviews.

    Reviews without a date are ignored. Dates are compared as plain strings and
    groups keep the batch order of their members.
    """
    reviews_by_date: dict[str, list[Review]] = {}
    for review in reviews:
        if not review.date:
            continue
        reviews_by_date.setdefault(review.date, []).append(review)

    flags: list[ReviewBombingFlag] = []
    for date, date_reviews in reviews_by_date.items():
        if len(date_reviews) < MINIMUM_REVIEWS_FOR_BOMBING:
            continue
        flags.append(
            ReviewBombingFlag(
                confidence=_bombing_confidence(date_reviews),
                details=ReviewBombingDetails(
                    date=date,
                    review_count=len(date_reviews),
                    hours_span=BOMBING_HOURS_SPAN,
                    review_ids=[review.id for review in date_reviews],
                ),
            )
        )
    return flags


def _bombing_confidence(reviews: Sequence[Review]) -> float:
    confidence = 0.5
    count = len(reviews)

    if count >= 10:
        confidence += 0.2
    elif count >= 5:
        confidence += 0.1

    unverified_ratio = sum(1 for review in reviews if not review.verified) / count
    if unverified_ratio > 0.7:
        confidence += 0.2
    elif unverified_ratio > 0.5:
        confidence += 0.1

    if len({review.rating for review in reviews}) == 1:
        confidence += 0.1

    return round(min(confidence, 1.0), 4)


def detect_high_verified_purchases(reviews: Sequence[Review]) -> list[HighVerifiedPurchasesFlag]:
    if not reviews:
        return []

    verified_count = sum(1 for review in reviews if review.verified)
    # half-up rounding, so 82.5 reads as 83
    percentage = math.floor(verified_count * 100 / len(reviews) + 0.5)
    if percentage < VERIFIED_PURCHASE_THRESHOLD:
        return []

    return [
        HighVerifiedPurchasesFlag(
            confidence=_verified_confidence(percentage),
            details=HighVerifiedPurchasesDetails(percentage=percentage),
        )
    ]


def _verified_confidence(percentage: int) -> float:
    for floor_pct, confidence in VERIFIED_CONFIDENCE_BANDS:
        if percentage >= floor_pct:
            return confidence
    return VERIFIED_BASE_CONFIDENCE


def detect_local_flags(reviews: Sequence[Review]) -> FlagAnalysis:
    """Run every local detector over the same batch."""
    return FlagAnalysis(
        red_flags=[*detect_review_bombing(reviews)],
        green_flags=[*detect_high_verified_purchases(reviews)],
    )
