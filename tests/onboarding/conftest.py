"""
Onboarding test fixtures: a four-step declared flow and a configured path.
"""

import pytest

from flow_steps import Consent, Done, Interests, Welcome
from onboarding import NavigationPath, step
from onboarding.config import OnboardingSettings


@pytest.fixture
def flow():
    return [
        step(Welcome()),
        step(Interests(), identity="interests"),
        step(Consent()),
        step(Done()),
    ]


@pytest.fixture
def completions():
    return []


@pytest.fixture
def navigation(flow, completions):
    path = NavigationPath(
        on_complete=lambda: completions.append(True),
        settings=OnboardingSettings(strict_navigation=False),
    )
    path.configure(flow)
    return path
