"""
Hotel Onboarding Core
Configuration Module
"""
from .settings import Settings, OnboardingSettings, get_settings

__all__ = ["Settings", "OnboardingSettings", "get_settings"]
