"""
Onboarding Module
"""
from .draft_store import DraftStore
from .steps import STEP_ORDER, StepId, parse_step

__all__ = [
    "DraftStore",
    "STEP_ORDER",
    "StepId",
    "parse_step",
]
