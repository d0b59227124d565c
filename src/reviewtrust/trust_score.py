from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from .models import FlagType, GreenFlag, RedFlag

# Signed impact of a fully confident flag on the score
FLAG_WEIGHTS: dict[FlagType, float] = {
    FlagType.REVIEW_BOMBING: -25.0,
    FlagType.PHRASE_REPETITION: -15.0,
    FlagType.EXCESSIVE_POSITIVITY: -10.0,
    FlagType.HIGH_VERIFIED_PURCHASES: 20.0,
}

_missing_weights = set(FlagType) - set(FLAG_WEIGHTS)
if _missing_weights:
    raise RuntimeError(f"No trust weight for flag types: {sorted(t.value for t in _missing_weights)}")

_WEIGHT_BY_TYPE = {flag_type.value: weight for flag_type, weight in FLAG_WEIGHTS.items()}

BASE_SCORE = 50.0
RED_DECAY = 0.8
GREEN_DECAY = 0.9
MULTIPLE_RED_FLAGS_THRESHOLD = 2
MULTIPLE_RED_FLAGS_PENALTY = 0.8


def flag_weight(flag_type: str) -> float:
    return _WEIGHT_BY_TYPE.get(flag_type, 0.0)


def _list_impact(flags: Sequence[RedFlag | GreenFlag], decay: float) -> float:
    """Sum weight * confidence * decay**position over one polarity list.

    Decay is positional: a flag is discounted by how many flags precede it in
    its own list, whatever their type.
    """
    if not flags:
        return 0.0
    weights = np.array([flag_weight(flag.type) for flag in flags], dtype=float)
    confidences = np.array([flag.confidence for flag in flags], dtype=float)
    factors = np.power(decay, np.arange(len(flags), dtype=float))
    return float(np.sum(weights * confidences * factors))


def calculate_trust_score(
    *,
    red_flags: Sequence[RedFlag],
    green_flags: Sequence[GreenFlag],
) -> int:
    """Reduce ordered red/green flag lists to an integer score in [0, 100]."""
    score = BASE_SCORE
    score += _list_impact(red_flags, RED_DECAY) + _list_impact(green_flags, GREEN_DECAY)

    if len(red_flags) > MULTIPLE_RED_FLAGS_THRESHOLD:
        score *= MULTIPLE_RED_FLAGS_PENALTY

    rounded = math.floor(score + 0.5)
    return max(0, min(100, rounded))
