"""
Consent test fixtures: settings, a fixed clock, and sample documents.
"""

from datetime import datetime

import pytest

from consent import ConsentDocument
from consent.config import ConsentSettings
from consent.signature import SignatureMode
from consent_samples import STUDY_DOCUMENT, sign


@pytest.fixture
def settings():
    return ConsentSettings(_env_file=None)


@pytest.fixture
def typed_settings():
    return ConsentSettings(_env_file=None, signature_mode=SignatureMode.TYPED)


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 1, 23, 9, 30)


@pytest.fixture
def study_document(settings):
    return ConsentDocument(STUDY_DOCUMENT, settings=settings)


@pytest.fixture
def completed_document(study_document):
    study_document.set_value("share", True)
    study_document.set_value("arm", "b")
    sign(study_document, "participant")
    study_document.signature_date = "01/23/25"
    return study_document
