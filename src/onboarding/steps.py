"""
Onboarding Step Declarations.

A flow is declared as an ordered list of FlowElements:

    flow = [
        step(WelcomeStep()),
        step(ConsentStep(document)),
        step(InterestsStep(), identity="interests"),
    ]

step() records the call site so that two steps of the same type declared at
different places get distinct identifiers.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Hashable, Protocol, runtime_checkable

from .identifiers import SourceLocation, StepIdentifier


@runtime_checkable
class OnboardingStep(Protocol):
    """Capability every step payload provides: something the host can present."""

    def present(self) -> Any:
        ...


@runtime_checkable
class IdentifiableStep(Protocol):
    """A step that declares its own identity."""

    @property
    def onboarding_identity(self) -> Hashable:
        ...


@dataclass(frozen=True)
class IllegalOnboardingStep:
    """Placeholder presented when the path points at a step that no longer exists."""
    identifier: StepIdentifier

    def present(self) -> str:
        return f"Illegal onboarding step: {self.identifier}"


@dataclass(frozen=True)
class FlowElement:
    """One declared step: its payload, optional identity and declaration site."""
    payload: Any
    identity: Hashable | None = None
    source_location: SourceLocation | None = None


def capture_source_location(stacklevel: int = 1) -> SourceLocation | None:
    """Return the source location `stacklevel` frames above the caller."""
    frame = inspect.currentframe()
    try:
        if frame is None:
            return None
        target = frame.f_back
        for _ in range(stacklevel):
            if target is None:
                return None
            target = target.f_back
        if target is None:
            return None
        info = inspect.getframeinfo(target, context=0)
        positions = getattr(info, "positions", None)
        column = positions.col_offset if positions and positions.col_offset is not None else 0
        return SourceLocation(file=info.filename, line=info.lineno, column=column)
    finally:
        del frame


def step(payload: Any, identity: Hashable | None = None) -> FlowElement:
    """Declare a flow step at the caller's source location."""
    return FlowElement(
        payload=payload,
        identity=identity,
        source_location=capture_source_location(stacklevel=1),
    )


def identifier_for(element: FlowElement, custom: bool = False) -> StepIdentifier:
    """
    Resolve the StepIdentifier of a declared element.

    Precedence: explicit identity, then the payload's own onboarding_identity,
    then the payload type plus declaration site.
    """
    step_type = type(element.payload)
    if element.identity is not None:
        return StepIdentifier.from_identity(element.identity, step_type=step_type, custom=custom)
    if isinstance(element.payload, IdentifiableStep):
        return StepIdentifier.from_identity(
            element.payload.onboarding_identity, step_type=step_type, custom=custom
        )
    return StepIdentifier.from_type(step_type, element.source_location, custom=custom)
