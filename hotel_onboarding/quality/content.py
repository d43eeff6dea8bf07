"""
Hotel content consumed by the quality scoring engine, and the scoring output
shapes. Everything serializes to the camelCase documents stored on the
aggregate.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import Field

from hotel_onboarding.onboarding.steps import (
    BusinessFeatures,
    CamelModel,
    LocationDetails,
    Policies,
    ProcessedImage,
)

WORDS_PER_MINUTE = 200


class RichTextContent(CamelModel):
    """Description text with derived word count and reading time"""
    content: str = ""
    format: str = "markdown"
    word_count: int = 0
    reading_time: int = 0

    @classmethod
    def from_text(cls, text: str, format: str = "markdown") -> "RichTextContent":
        word_count = len(text.split())
        return cls(
            content=text,
            format=format,
            word_count=word_count,
            reading_time=math.ceil(word_count / WORDS_PER_MINUTE),
        )


class HotelContent(CamelModel):
    """Aggregated hotel content the scoring engine works on"""
    images: List[ProcessedImage] = Field(default_factory=list)
    amenities: Optional[Dict[str, List[str]]] = None
    property_description: Optional[RichTextContent] = None
    location_details: Optional[LocationDetails] = None
    policies: Optional[Policies] = None
    business_features: Optional[BusinessFeatures] = None
    total_rooms: int = 0


class ComponentScore(CamelModel):
    score: int
    weight: float
    factors: Dict[str, Any] = Field(default_factory=dict)


class QualityBreakdown(CamelModel):
    image_quality: ComponentScore
    content_completeness: ComponentScore
    policy_clarity: ComponentScore


class QualityMetrics(CamelModel):
    """Scoring output; ``lastCalculated`` is stamped by whoever stores it"""
    overall_score: int
    image_quality: int
    content_completeness: int
    policy_clarity: int
    breakdown: QualityBreakdown


class MissingInformation(CamelModel):
    category: str
    items: List[str]
    priority: str


class Recommendation(CamelModel):
    type: str
    title: str
    description: str
    priority: str
    action_required: str
    estimated_impact: int


class QualityAssessment(CamelModel):
    metrics: QualityMetrics
    missing_information: List[MissingInformation] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
