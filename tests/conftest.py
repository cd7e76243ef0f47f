"""
Pytest configuration and fixtures shared by the onboarding and consent tests.
"""

import os

import pytest

# Settings are read from the environment; keep a developer's .env out of tests
os.environ.setdefault("ONBOARDING_STRICT_NAVIGATION", "false")
os.environ.setdefault("CONSENT_SIGNATURE_MODE", "ink")

from onboarding.config import get_settings as get_onboarding_settings
from consent.config import get_settings as get_consent_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Clear cached settings so monkeypatched env vars take effect."""
    get_onboarding_settings.cache_clear()
    get_consent_settings.cache_clear()
    yield
    get_onboarding_settings.cache_clear()
    get_consent_settings.cache_clear()
