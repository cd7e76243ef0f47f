"""
Onboarding Errors.

Duplicate step identifiers are configuration errors and always raise.
Navigating to an undeclared step only raises in strict navigation mode.
"""


class OnboardingError(Exception):
    """Base class for onboarding flow errors."""


class DuplicateStepError(OnboardingError):
    """Two declared steps resolve to the same StepIdentifier."""

    def __init__(self, identifier, conflicting=None):
        self.identifier = identifier
        self.conflicting = conflicting
        super().__init__(
            f"Onboarding flow contains duplicate step identifier {identifier!r}. "
            "If a flow declares the same step type more than once at one call site, "
            "give each step an explicit identity."
        )


class UndeclaredStepError(OnboardingError):
    """Navigation targeted a step that is not part of the declared flow."""

    def __init__(self, reference):
        self.reference = reference
        super().__init__(f"Unable to find onboarding step for {reference!r}")
