"""
Flow Registry.

Holds the declared steps of a flow in declaration order, plus a side table
of custom steps appended at runtime. Custom identifiers are never looked up
among the declared steps when scanning the flow order.
"""

import logging
from typing import Any, Hashable, Iterable, Union

from .errors import DuplicateStepError
from .identifiers import StepIdentifier
from .steps import FlowElement, identifier_for

logger = logging.getLogger(__name__)

StepReference = Union[StepIdentifier, type, Hashable]


class FlowRegistry:
    """Ordered declared steps plus unordered custom steps."""

    def __init__(self, elements: Iterable[FlowElement] = ()) -> None:
        self._ordered: dict[StepIdentifier, Any] = {}
        self._custom: dict[StepIdentifier, Any] = {}
        elements = list(elements)
        if elements:
            self.register(elements)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, elements: Iterable[FlowElement]) -> list[StepIdentifier]:
        """
        Replace the declared steps with `elements`.

        Raises DuplicateStepError if two elements resolve to the same
        identifier. The registry is left unchanged in that case.
        """
        resolved: dict[StepIdentifier, Any] = {}
        for element in elements:
            identifier = identifier_for(element)
            if identifier in resolved:
                conflicting = next(key for key in resolved if key == identifier)
                raise DuplicateStepError(identifier, conflicting)
            resolved[identifier] = element.payload
        self._ordered = resolved
        logger.debug(f"FlowRegistry: registered {len(resolved)} steps")
        return list(resolved)

    def append_custom(self, identifier: StepIdentifier, payload: Any) -> None:
        """Add a custom step. Appending the same identifier again overwrites it."""
        if identifier in self._custom:
            logger.debug(f"FlowRegistry: replacing custom step {identifier}")
        self._custom[identifier] = payload

    def clear(self) -> None:
        self._ordered.clear()

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup(self, identifier: StepIdentifier) -> Any | None:
        """
        Payload for `identifier`.

        Declared steps first, then custom steps. Custom identifiers only
        resolve among custom steps, even when a declared step shares their
        identity.
        """
        if not identifier.is_custom and identifier in self._ordered:
            return self._ordered[identifier]
        return self._custom.get(identifier)

    def contains(self, identifier: StepIdentifier) -> bool:
        if not identifier.is_custom and identifier in self._ordered:
            return True
        return identifier in self._custom

    def index_of(self, identifier: StepIdentifier | None) -> int | None:
        """Position of a declared step in flow order."""
        if identifier is None or identifier.is_custom:
            return None
        for index, key in enumerate(self._ordered):
            if key == identifier:
                return index
        return None

    def find(self, reference: StepReference, start: int = 0) -> int | None:
        """
        Index of the first declared step at or after `start` that matches
        `reference`, which may be a StepIdentifier, a step class or a
        declared identity value.
        """
        identifiers = self.identifiers
        for index in range(max(start, 0), len(identifiers)):
            if _matches(identifiers[index], reference):
                return index
        return None

    @property
    def identifiers(self) -> list[StepIdentifier]:
        return list(self._ordered)

    @property
    def first_identifier(self) -> StepIdentifier | None:
        return next(iter(self._ordered), None)

    @property
    def custom_steps(self) -> dict[StepIdentifier, Any]:
        return dict(self._custom)

    def __len__(self) -> int:
        return len(self._ordered)

    def __bool__(self) -> bool:
        return bool(self._ordered)


def _matches(identifier: StepIdentifier, reference: StepReference) -> bool:
    if isinstance(reference, StepIdentifier):
        return identifier == reference
    if isinstance(reference, type):
        return identifier.matches_type(reference)
    declared = identifier.declared_identity
    return declared is not None and declared == reference
