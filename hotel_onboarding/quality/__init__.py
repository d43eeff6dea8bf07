"""
Quality Module

Step validators and the quality scoring engine.
"""
from .content import HotelContent, QualityAssessment, QualityMetrics
from .scoring import QualityScoringEngine
from .validators import StepValidationResult, StepValidator, validate_step

__all__ = [
    "HotelContent",
    "QualityAssessment",
    "QualityMetrics",
    "QualityScoringEngine",
    "StepValidationResult",
    "StepValidator",
    "validate_step",
]
