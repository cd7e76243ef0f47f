"""
Onboarding Step Identifiers.

Every step in a flow is keyed by a StepIdentifier. There is exactly one
identity scheme:

- A declared identity (any hashable value) when the step provides one
- Otherwise the step's type plus the source location it was declared at

Two steps of the same type declared at different call sites are distinct.
Two steps of the same type declared at the same call site (e.g. in a loop)
collide and need an explicit identity.
"""

from dataclasses import dataclass, field
from typing import Any, Hashable


@dataclass(frozen=True)
class SourceLocation:
    """Where a step was declared."""
    file: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class DerivedIdentity:
    """Identity derived from a declared, hashable value."""
    value: Hashable


@dataclass(frozen=True)
class TypeAndLocation:
    """Identity derived from the step type and its declaration site."""
    type_name: str
    file: str | None = None
    line: int | None = None
    column: int | None = None


IdentityKind = DerivedIdentity | TypeAndLocation


def qualified_type_name(step_type: type) -> str:
    """Fully-qualified name of a step class, e.g. 'app.steps.Welcome'."""
    return f"{step_type.__module__}.{step_type.__qualname__}"


@dataclass(frozen=True)
class StepIdentifier:
    """
    Stable, hashable identity of one onboarding step.

    Equality and hashing only consider `identity_kind`. `is_custom` and
    `step_type` are bookkeeping: the former marks steps appended at runtime,
    the latter allows looking steps up by their class.
    """

    identity_kind: IdentityKind
    is_custom: bool = field(default=False, compare=False)
    step_type: type | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_identity(
        cls,
        value: Hashable,
        *,
        step_type: type | None = None,
        custom: bool = False,
    ) -> "StepIdentifier":
        return cls(DerivedIdentity(value), is_custom=custom, step_type=step_type)

    @classmethod
    def from_type(
        cls,
        step_type: type,
        location: SourceLocation | None = None,
        *,
        custom: bool = False,
    ) -> "StepIdentifier":
        kind = TypeAndLocation(
            type_name=qualified_type_name(step_type),
            file=location.file if location else None,
            line=location.line if location else None,
            column=location.column if location else None,
        )
        return cls(kind, is_custom=custom, step_type=step_type)

    @property
    def declared_identity(self) -> Any:
        """The declared identity value, or None for type-based identifiers."""
        if isinstance(self.identity_kind, DerivedIdentity):
            return self.identity_kind.value
        return None

    def matches_type(self, step_type: type) -> bool:
        if self.step_type is not None:
            return self.step_type is step_type
        kind = self.identity_kind
        return isinstance(kind, TypeAndLocation) and kind.type_name == qualified_type_name(step_type)

    def __str__(self) -> str:
        kind = self.identity_kind
        prefix = "custom:" if self.is_custom else ""
        if isinstance(kind, DerivedIdentity):
            return f"{prefix}{kind.value!r}"
        if kind.file is None:
            return f"{prefix}{kind.type_name}"
        return f"{prefix}{kind.type_name}@{kind.file}:{kind.line}:{kind.column}"
