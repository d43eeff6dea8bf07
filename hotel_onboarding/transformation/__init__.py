"""
Transformation Module

Draft normalization and projection of drafts and legacy records into
hotel and room aggregate sections.
"""
from .cleaners import CleaningStats, StepDataCleaner, normalize_step_payload

__all__ = [
    "CleaningStats",
    "StepDataCleaner",
    "normalize_step_payload",
]
