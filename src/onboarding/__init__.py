"""
Onboarding Flow Navigation.

Declares multi-step onboarding flows and drives navigation through them:

1. Step identity - declared identity, else step type + declaration site
2. Flow registry - ordered declared steps plus runtime custom steps
3. Navigation path - forward/back/jump/custom navigation and completion

Presentation is left to the host: a step payload is any object the host
knows how to present.
"""

from .errors import DuplicateStepError, OnboardingError, UndeclaredStepError
from .identifiers import DerivedIdentity, SourceLocation, StepIdentifier, TypeAndLocation
from .navigation import NavigationPath
from .registry import FlowRegistry
from .state import CursorState
from .steps import (
    FlowElement,
    IdentifiableStep,
    IllegalOnboardingStep,
    OnboardingStep,
    identifier_for,
    step,
)

__all__ = [
    "CursorState",
    "DerivedIdentity",
    "DuplicateStepError",
    "FlowElement",
    "FlowRegistry",
    "IdentifiableStep",
    "IllegalOnboardingStep",
    "NavigationPath",
    "OnboardingError",
    "OnboardingStep",
    "SourceLocation",
    "StepIdentifier",
    "TypeAndLocation",
    "UndeclaredStepError",
    "identifier_for",
    "step",
]
