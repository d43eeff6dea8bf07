"""
Hotel Onboarding Core

Onboarding sessions, quality scoring and data integration for hotel
listings.
"""

__version__ = "1.0.0"
