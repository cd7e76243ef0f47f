"""
Consent - Configuration and settings.

Read from the environment (CONSENT_*) or a local .env file. User-visible
labels used in exported documents live here so hosts can localize them.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from .signature import SignatureMode


class ConsentSettings(BaseSettings):
    """Settings for consent document handling and export."""

    model_config = SettingsConfigDict(
        env_prefix="CONSENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Signature capture
    signature_mode: SignatureMode = SignatureMode.INK
    signature_date_format: str = "%m/%d/%Y"

    # Export defaults
    paper_size: Literal["us_letter", "din_a4"] = "us_letter"
    including_timestamp: bool = True
    timestamp_format: str = "%b %d, %Y at %I:%M %p"
    pdf_creator: str = "onboarding-consent"

    # Labels
    yes_label: str = "Yes"
    no_label: str = "No"
    exported_label: str = "Exported"
    markdown_loading_error: str = "Error: unable to load this part of the document."

    # FileConsentStore target directory
    export_dir: str = "consent_exports"


@lru_cache
def get_settings() -> ConsentSettings:
    """Get cached ConsentSettings instance."""
    return ConsentSettings()
