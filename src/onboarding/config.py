"""
Onboarding - Configuration and settings.

Read from the environment (ONBOARDING_*) or a local .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class OnboardingSettings(BaseSettings):
    """Settings for onboarding flow navigation."""

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Navigating to an undeclared step is a logged no-op by default.
    # ONBOARDING_STRICT_NAVIGATION=1 turns it into UndeclaredStepError.
    strict_navigation: bool = False


@lru_cache
def get_settings() -> OnboardingSettings:
    """Get cached OnboardingSettings instance."""
    return OnboardingSettings()
