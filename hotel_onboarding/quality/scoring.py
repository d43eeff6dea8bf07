"""
Quality Scoring Engine

Weighted quality score for a hotel's aggregated content:

- Image quality        40%
- Content completeness 40%
- Policy clarity       20%

The engine is pure and performs no I/O. The same content always produces
the same metrics, so live previews and the committed score agree.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

import structlog
from pydantic import BaseModel

from hotel_onboarding.onboarding.steps import (
    REQUIRED_IMAGE_CATEGORIES,
    BusinessFeatures,
    ImageCategory,
    LocationDetails,
    Policies,
    ProcessedImage,
)
from hotel_onboarding.quality.content import (
    ComponentScore,
    HotelContent,
    MissingInformation,
    QualityAssessment,
    QualityBreakdown,
    QualityMetrics,
    Recommendation,
    RichTextContent,
)

logger = structlog.get_logger(__name__)

IMAGE_WEIGHT = 0.4
CONTENT_WEIGHT = 0.4
POLICY_WEIGHT = 0.2

HIGH_QUALITY_THRESHOLD = 80
PROFESSIONAL_QUALITY_THRESHOLD = 85
PROFESSIONAL_MIN_WIDTH = 1920
PROFESSIONAL_MIN_HEIGHT = 1080
MIN_IMAGE_COUNT = 5
RECOMMENDATION_THRESHOLD = 70

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

DESCRIPTION_SIGNALS = (
    ("unique", "special"),
    ("location", "nearby"),
    ("amenities", "facilities"),
)


def round_half_up(value: float) -> int:
    """Round .5 upwards, independent of banker's rounding"""
    return int(math.floor(value + 0.5))


def is_present(value: Any) -> bool:
    """Not None and not an empty string, collection or model"""
    if value is None:
        return False
    if isinstance(value, BaseModel):
        return bool(value.model_dump(exclude_none=True, exclude_defaults=True))
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) > 0
    return True


class QualityScoringEngine:
    """
    Scores hotel content and explains the score.

    Example:
        engine = QualityScoringEngine()
        metrics = engine.score(content)
        missing = engine.identify_missing_information(content)
        recommendations = engine.generate_recommendations(metrics, missing)
    """

    # =========================================================================
    # SCORE
    # =========================================================================

    def score(self, content: HotelContent) -> QualityMetrics:
        image_score, image_factors = self.calculate_image_score(content.images)
        content_score, content_factors = self.calculate_content_score(content)
        policy_score, policy_factors = self.calculate_policy_score(content.policies)

        overall = round_half_up(
            image_score * IMAGE_WEIGHT
            + content_score * CONTENT_WEIGHT
            + policy_score * POLICY_WEIGHT
        )

        metrics = QualityMetrics(
            overall_score=overall,
            image_quality=image_score,
            content_completeness=content_score,
            policy_clarity=policy_score,
            breakdown=QualityBreakdown(
                image_quality=ComponentScore(score=image_score, weight=IMAGE_WEIGHT, factors=image_factors),
                content_completeness=ComponentScore(
                    score=content_score, weight=CONTENT_WEIGHT, factors=content_factors
                ),
                policy_clarity=ComponentScore(score=policy_score, weight=POLICY_WEIGHT, factors=policy_factors),
            ),
        )
        logger.debug(
            "Quality score calculated",
            overall_score=overall,
            image_quality=image_score,
            content_completeness=content_score,
            policy_clarity=policy_score,
        )
        return metrics

    def calculate_image_score(self, images: List[ProcessedImage]) -> Tuple[int, Dict[str, int]]:
        if not images:
            return 0, {
                "totalImages": 0,
                "highQualityImages": 0,
                "categoryCoverage": 0,
                "professionalPhotos": 0,
            }

        total = len(images)
        high_quality = sum(1 for image in images if image.quality_score >= HIGH_QUALITY_THRESHOLD)
        present = {ImageCategory.parse(image.category) for image in images}
        coverage = sum(1 for category in REQUIRED_IMAGE_CATEGORIES if category in present)
        professional = sum(
            1
            for image in images
            if image.quality_score >= PROFESSIONAL_QUALITY_THRESHOLD
            and image.width >= PROFESSIONAL_MIN_WIDTH
            and image.height >= PROFESSIONAL_MIN_HEIGHT
        )

        raw = (
            min(total * 5, 30)
            + (high_quality / total) * 40
            + (coverage / len(REQUIRED_IMAGE_CATEGORIES)) * 20
            + min(professional * 2, 10)
        )
        return min(round_half_up(raw), 100), {
            "totalImages": total,
            "highQualityImages": high_quality,
            "categoryCoverage": coverage,
            "professionalPhotos": professional,
        }

    def calculate_content_score(self, content: HotelContent) -> Tuple[int, Dict[str, int]]:
        description = self.assess_description(content.property_description)
        amenities = self.assess_amenities(content.amenities)
        location = self.assess_location(content.location_details)
        rooms = self.assess_rooms(content.total_rooms)

        score = round_half_up((description + amenities + location + rooms) * 0.25)
        return score, {
            "descriptionQuality": description,
            "amenityCompleteness": amenities,
            "locationDetails": location,
            "roomInformation": rooms,
        }

    def calculate_policy_score(self, policies: Optional[Policies]) -> Tuple[int, Dict[str, int]]:
        if policies is None:
            return 0, {
                "cancellationPolicy": 0,
                "checkInOut": 0,
                "bookingTerms": 0,
                "additionalPolicies": 0,
            }

        factors = {
            "cancellationPolicy": 100 if is_present(policies.cancellation) else 0,
            "checkInOut": 100 if is_present(policies.check_in) and is_present(policies.check_out) else 0,
            "bookingTerms": 100 if is_present(policies.booking) else 0,
            "additionalPolicies": 100 if is_present(policies.pet) and is_present(policies.smoking) else 0,
        }
        return round_half_up(sum(factors.values()) / 4), factors

    def assess_description(self, description: Optional[RichTextContent]) -> int:
        if description is None:
            return 0

        score = 0
        if description.word_count >= 100:
            score += 40
        elif description.word_count >= 50:
            score += 25
        elif description.word_count >= 20:
            score += 10

        text = description.content.lower()
        for keywords in DESCRIPTION_SIGNALS:
            if any(keyword in text for keyword in keywords):
                score += 15
        if description.reading_time > 0:
            score += 15

        return min(score, 100)

    def assess_amenities(self, amenities: Optional[Dict[str, List[str]]]) -> int:
        if not amenities:
            return 0
        non_empty = sum(1 for ids in amenities.values() if ids)
        return round_half_up(non_empty / len(amenities) * 100)

    def assess_location(self, location: Optional[LocationDetails]) -> int:
        if location is None:
            return 0
        checks = (
            location.nearby_attractions,
            location.transportation,
            location.accessibility,
            location.neighborhood,
        )
        return sum(25 for value in checks if is_present(value))

    def assess_rooms(self, total_rooms: int) -> int:
        if total_rooms <= 0:
            return 0
        if total_rooms >= 10:
            return 100
        if total_rooms >= 5:
            return 80
        if total_rooms >= 2:
            return 60
        return 40

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def identify_missing_information(self, content: HotelContent) -> List[MissingInformation]:
        """Missing items per category; categories with nothing missing are omitted"""
        checks = [
            self._missing_images(content.images),
            self._missing_content(content),
            self._missing_policies(content.policies),
            self._missing_business_features(content.business_features),
        ]
        return [entry for entry in checks if entry.items]

    def _missing_images(self, images: List[ProcessedImage]) -> MissingInformation:
        present = {ImageCategory.parse(image.category) for image in images}
        items = [f"{category.value} photos" for category in REQUIRED_IMAGE_CATEGORIES if category not in present]
        if len(images) < MIN_IMAGE_COUNT:
            items.append(f"minimum {MIN_IMAGE_COUNT} property photos")
        return MissingInformation(category="Images", items=items, priority="high" if items else "low")

    def _missing_content(self, content: HotelContent) -> MissingInformation:
        items = []
        description = content.property_description
        if description is None or description.word_count < 50:
            items.append("detailed property description")
        if not content.amenities or not any(content.amenities.values()):
            items.append("property amenities")
        if not is_present(content.location_details):
            items.append("location details and nearby attractions")
        return MissingInformation(category="Content", items=items, priority=self._count_priority(items))

    def _missing_policies(self, policies: Optional[Policies]) -> MissingInformation:
        if policies is None:
            return MissingInformation(category="Policies", items=["all booking policies"], priority="high")

        items = []
        if not is_present(policies.check_in):
            items.append("check-in policy")
        if not is_present(policies.check_out):
            items.append("check-out policy")
        if not is_present(policies.cancellation):
            items.append("cancellation policy")
        if not is_present(policies.booking):
            items.append("booking terms")
        return MissingInformation(category="Policies", items=items, priority=self._count_priority(items))

    def _missing_business_features(self, features: Optional[BusinessFeatures]) -> MissingInformation:
        if features is None:
            return MissingInformation(
                category="Business Features",
                items=["business amenities and services"],
                priority="low",
            )

        items = []
        if features.connectivity is None or not is_present(features.connectivity.wifi_speed):
            items.append("WiFi speed information")
        if not features.work_spaces:
            items.append("workspace details")
        return MissingInformation(
            category="Business Features",
            items=items,
            priority="medium" if items else "low",
        )

    @staticmethod
    def _count_priority(items: List[str]) -> str:
        if len(items) > 2:
            return "high"
        return "medium" if items else "low"

    # =========================================================================
    # RECOMMENDATIONS
    # =========================================================================

    def generate_recommendations(
        self,
        metrics: QualityMetrics,
        missing: List[MissingInformation],
    ) -> List[Recommendation]:
        """Deterministic recommendations, high priority first, ties in insertion order"""
        recommendations: List[Recommendation] = []

        if metrics.image_quality < RECOMMENDATION_THRESHOLD:
            recommendations.append(Recommendation(
                type="image",
                title="Improve Image Quality",
                description="Your property images need improvement to attract more bookings",
                priority="high",
                action_required="Upload high-resolution, professional photos covering all property areas",
                estimated_impact=15,
            ))

        if metrics.content_completeness < RECOMMENDATION_THRESHOLD:
            recommendations.append(Recommendation(
                type="content",
                title="Complete Property Information",
                description="Missing property details can reduce booking confidence",
                priority="high",
                action_required="Add detailed descriptions, amenities, and location information",
                estimated_impact=12,
            ))

        if metrics.policy_clarity < RECOMMENDATION_THRESHOLD:
            recommendations.append(Recommendation(
                type="policy",
                title="Clarify Booking Policies",
                description="Clear policies reduce booking disputes and improve guest satisfaction",
                priority="medium",
                action_required="Define check-in/out times, cancellation terms, and house rules",
                estimated_impact=8,
            ))

        for entry in missing:
            if entry.priority == "high":
                recommendations.append(Recommendation(
                    type=self._recommendation_type(entry.category),
                    title=f"Add Missing {entry.category}",
                    description=f"Critical information is missing from your {entry.category.lower()} section",
                    priority="high",
                    action_required=f"Complete: {', '.join(entry.items)}",
                    estimated_impact=10,
                ))

        recommendations.extend(self._best_practices(metrics))

        # sorted() is stable
        return sorted(recommendations, key=lambda r: -PRIORITY_ORDER[r.priority])

    @staticmethod
    def _recommendation_type(category: str) -> str:
        return {
            "images": "image",
            "policies": "policy",
            "business features": "amenity",
        }.get(category.lower(), "content")

    @staticmethod
    def _best_practices(metrics: QualityMetrics) -> List[Recommendation]:
        recommendations = []
        if metrics.overall_score >= 90:
            recommendations.append(Recommendation(
                type="content",
                title="Excellent Property Profile",
                description="Your property profile is outstanding! Consider highlighting unique features.",
                priority="low",
                action_required="Add seasonal promotions or special packages",
                estimated_impact=2,
            ))
        elif metrics.overall_score >= 70:
            recommendations.append(Recommendation(
                type="content",
                title="Good Foundation, Room for Growth",
                description="Your profile is solid. Focus on the highest-impact improvements.",
                priority="medium",
                action_required="Address the highest priority missing elements first",
                estimated_impact=5,
            ))

        recommendations.append(Recommendation(
            type="image",
            title="Professional Photography",
            description="Professional photos can increase bookings by up to 40%",
            priority="medium",
            action_required="Consider hiring a professional photographer for key areas",
            estimated_impact=8,
        ))
        return recommendations

    def assess(self, content: HotelContent) -> QualityAssessment:
        """Metrics, missing information and recommendations in one pass"""
        metrics = self.score(content)
        missing = self.identify_missing_information(content)
        return QualityAssessment(
            metrics=metrics,
            missing_information=missing,
            recommendations=self.generate_recommendations(metrics, missing),
        )
