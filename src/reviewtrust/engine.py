from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .content_patterns import ContentPatternAnalyzer
from .detectors import detect_local_flags
from .models import GreenFlag, RedFlag, Review
from .trust_score import calculate_trust_score

logger = logging.getLogger(__name__)


@dataclass
class TrustAssessment:
    trust_score: int
    analyzed: int
    red_flags: list[RedFlag] = field(default_factory=list)
    green_flags: list[GreenFlag] = field(default_factory=list)


@dataclass
class ReviewTrustEngine:
    content_analyzer: ContentPatternAnalyzer

    async def assess(self, reviews: Sequence[Review]) -> TrustAssessment:
        batch = list(reviews)
        loop = asyncio.get_running_loop()
        local_analysis, content_analysis = await asyncio.gather(
            loop.run_in_executor(None, detect_local_flags, batch),
            self.content_analyzer.analyze(batch),
        )

        # local detector flags always precede classifier flags
        red_flags = [*local_analysis.red_flags, *content_analysis.red_flags]
        green_flags = [*local_analysis.green_flags]
        trust_score = calculate_trust_score(red_flags=red_flags, green_flags=green_flags)

        logger.info(
            "Assessed %d reviews: score=%d red=%d green=%d",
            len(batch),
            trust_score,
            len(red_flags),
            len(green_flags),
        )
        return TrustAssessment(
            trust_score=trust_score,
            analyzed=len(batch),
            red_flags=red_flags,
            green_flags=green_flags,
        )
