from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MAX_REVIEWS_PER_REQUEST = 100


class FlagType(str, Enum):
    REVIEW_BOMBING = "review_bombing"
    PHRASE_REPETITION = "phrase_repetition"
    EXCESSIVE_POSITIVITY = "excessive_positivity"
    HIGH_VERIFIED_PURCHASES = "high_verified_purchases"


class WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClosedWireModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class Review(WireModel):
    id: str = Field(..., min_length=1)
    rating: float = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1)
    author: str
    verified: bool
    date: str | None = None
    helpful_votes: int | None = None
    total_votes: int | None = None
    product_variation: str | None = None
    is_vine_review: bool | None = None
    badges: list[str] | None = None


# Details -----------------------------------------------------------------
class ReviewBombingDetails(ClosedWireModel):
    date: str
    review_count: int = Field(..., ge=0)
    hours_span: int = Field(..., ge=0)
    review_ids: list[str]


class PhraseRepetitionDetails(ClosedWireModel):
    phrase: str
    review_ids: list[str]


class ExcessivePositivityDetails(ClosedWireModel):
    review_ids: list[str]
    keywords: list[str] = Field(default_factory=list)


class HighVerifiedPurchasesDetails(ClosedWireModel):
    percentage: int = Field(..., ge=0, le=100)


# Flags -------------------------------------------------------------------
class ReviewBombingFlag(ClosedWireModel):
    type: Literal["review_bombing"] = "review_bombing"
    confidence: float = Field(..., ge=0.0, le=1.0)
    details: ReviewBombingDetails


class PhraseRepetitionFlag(ClosedWireModel):
    type: Literal["phrase_repetition"] = "phrase_repetition"
    confidence: float = Field(..., ge=0.0, le=1.0)
    details: PhraseRepetitionDetails


class ExcessivePositivityFlag(ClosedWireModel):
    type: Literal["excessive_positivity"] = "excessive_positivity"
    confidence: float = Field(..., ge=0.0, le=1.0)
    details: ExcessivePositivityDetails


class HighVerifiedPurchasesFlag(ClosedWireModel):
    type: Literal["high_verified_purchases"] = "high_verified_purchases"
    confidence: float = Field(..., ge=0.0, le=1.0)
    details: HighVerifiedPurchasesDetails


RedFlag = Annotated[
    Union[ReviewBombingFlag, PhraseRepetitionFlag, ExcessivePositivityFlag],
    Field(discriminator="type"),
]
GreenFlag = HighVerifiedPurchasesFlag


class FlagAnalysis(ClosedWireModel):
    red_flags: list[RedFlag] = Field(default_factory=list)
    green_flags: list[GreenFlag] = Field(default_factory=list)


class ContentAnalysis(ClosedWireModel):
    """Validated shape of the external classifier's answer."""

    red_flags: list[RedFlag]


# HTTP envelope -----------------------------------------------------------
class CheckProductRequest(WireModel):
    reviews: list[Review] = Field(..., min_length=1, max_length=MAX_REVIEWS_PER_REQUEST)

    @model_validator(mode="after")
    def _ensure_unique_ids(self) -> "CheckProductRequest":
        seen: set[str] = set()
        for review in self.reviews:
            if review.id in seen:
                raise ValueError(f"Duplicate review id: {review.id}")
            seen.add(review.id)
        return self


class ProductSummary(WireModel):
    trust_score: int = Field(..., ge=0, le=100)


class AnalysisMetrics(WireModel):
    analyzed: int
    total: int


class CheckProductResponse(WireModel):
    summary: ProductSummary
    metrics: AnalysisMetrics
    timestamp: str
    green_flags: list[GreenFlag] | None = None
    red_flags: list[RedFlag] | None = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
