"""
Onboarding Navigation Path.

The mutable cursor over a FlowRegistry. The path is a stack of
StepIdentifiers; the step on top is what the host presents. An empty path
means the first declared step is shown.

The "current regular step" is the top-most declared (non-custom) step on the
path. next_step() always continues from there, so custom steps pushed on top
are skipped when moving forward.

All mutation happens on the owning thread/loop. Observers are notified after
every change.
"""

import logging
from typing import Any, Callable, Hashable, Iterable

from .config import OnboardingSettings, get_settings
from .errors import UndeclaredStepError
from .identifiers import StepIdentifier
from .observers import ChangeNotifier
from .registry import FlowRegistry, StepReference
from .state import CursorState, cursor_state
from .steps import FlowElement, IllegalOnboardingStep, identifier_for

logger = logging.getLogger(__name__)


class NavigationPath:
    """
    Navigation state machine for one onboarding run.

    Usage:
        path = NavigationPath(on_complete=finish)
        path.configure([step(Welcome()), step(Consent()), step(Done())])
        path.next_step()                 # Welcome -> Consent
        path.append_custom_step(Help())  # show an extra screen
        path.next_step()                 # Consent -> Done (Help is skipped)
    """

    def __init__(
        self,
        on_complete: Callable[[], None] | None = None,
        settings: OnboardingSettings | None = None,
    ) -> None:
        self.registry = FlowRegistry()
        self.is_complete = False
        self.did_configure = False
        self._path: list[StepIdentifier] = []
        self._on_complete = on_complete
        self._settings = settings
        self._notifier = ChangeNotifier()

    @property
    def settings(self) -> OnboardingSettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(
        self,
        elements: Iterable[FlowElement],
        on_complete: Callable[[], None] | None = None,
        start_at: StepReference | None = None,
    ) -> None:
        """Register the declared flow and optionally jump to a start step."""
        self.did_configure = True
        if on_complete is not None:
            self._on_complete = on_complete
        self.update_steps(elements)
        if start_at is not None:
            self.append_step(start_at)

    def update_steps(self, elements: Iterable[FlowElement]) -> bool:
        """
        Rebuild the declared steps.

        Only accepted while the cursor is still at the first declared step, so
        a re-evaluated flow cannot corrupt navigation that is already under way.
        An empty flow completes immediately.

        Returns True if the update was applied.
        """
        elements = list(elements)
        if self.registry and self.current_step != self.registry.first_identifier:
            logger.debug(
                f"Ignoring flow update with {len(elements)} steps: "
                f"already navigated to {self.current_step}"
            )
            return False

        self.registry.register(elements)
        self._path = [identifier for identifier in self._path if self.registry.contains(identifier)]
        logger.debug(f"Onboarding flow updated: {len(self.registry)} steps")
        self._notifier.notify()

        if not self.registry:
            self._complete()
        return True

    # =========================================================================
    # Cursor
    # =========================================================================

    @property
    def path(self) -> tuple[StepIdentifier, ...]:
        return tuple(self._path)

    @property
    def current_step(self) -> StepIdentifier | None:
        """Top-most declared step on the path, else the first declared step."""
        for identifier in reversed(self._path):
            if not identifier.is_custom:
                return identifier
        return self.registry.first_identifier

    @property
    def visible_step(self) -> StepIdentifier | None:
        """The step the host should present, custom steps included."""
        if self._path:
            return self._path[-1]
        return self.registry.first_identifier

    @property
    def state(self) -> CursorState:
        return cursor_state(self._path, self.is_complete)

    def payload_for(self, identifier: StepIdentifier) -> Any:
        """Payload to present for `identifier`, or an IllegalOnboardingStep."""
        payload = self.registry.lookup(identifier)
        if payload is None:
            logger.warning(f"No onboarding step registered for {identifier}")
            return IllegalOnboardingStep(identifier)
        return payload

    @property
    def visible_payload(self) -> Any:
        identifier = self.visible_step
        if identifier is None:
            return None
        return self.payload_for(identifier)

    # =========================================================================
    # Navigation
    # =========================================================================

    def next_step(self) -> None:
        """Move to the declared step after the current one, or complete the flow."""
        identifiers = self.registry.identifiers
        index = self.registry.index_of(self.current_step)
        if index is None or index + 1 >= len(identifiers):
            self._complete()
            return
        self._push(identifiers[index + 1])

    def append_step(self, reference: StepReference) -> None:
        """
        Push a declared step identified by a StepIdentifier, a step class or a
        declared identity value.

        Unknown references are logged and ignored (or raise in strict mode).
        """
        index = self._find(reference)
        if index is None:
            return
        self._push(self.registry.identifiers[index])

    def move_to_next_step(self, reference: StepReference) -> None:
        """
        Jump to a declared step, placing every declared step up to it on the
        path so that back navigation walks through the skipped steps.
        """
        index = self._find(reference)
        if index is None:
            return
        self._path = self.registry.identifiers[1:index + 1]
        self._notifier.notify()

    def append_custom_step(self, payload: Any, identity: Hashable | None = None) -> StepIdentifier:
        """Show a step that is not part of the declared flow. Always succeeds."""
        identifier = identifier_for(FlowElement(payload=payload, identity=identity), custom=True)
        self.registry.append_custom(identifier, payload)
        self._push(identifier)
        return identifier

    def remove_last(self) -> None:
        """Go back one step. An emptied path shows the first step again."""
        if not self._path:
            logger.warning("remove_last() called on an empty onboarding path")
            return
        removed = self._path.pop()
        logger.debug(f"Onboarding step removed: {removed}")
        self._notifier.notify()

    # =========================================================================
    # Observation
    # =========================================================================

    def subscribe(self, observer: Callable[[], None]) -> Callable[[], None]:
        return self._notifier.subscribe(observer)

    # =========================================================================
    # Internals
    # =========================================================================

    def _find(self, reference: StepReference) -> int | None:
        start = self.registry.index_of(self.current_step) or 0
        index = self.registry.find(reference, start)
        if index is None:
            index = self.registry.find(reference)
        if index is None:
            if self.settings.strict_navigation:
                raise UndeclaredStepError(reference)
            logger.warning(f"Unable to find onboarding step with identifier '{reference}'")
        return index

    def _push(self, identifier: StepIdentifier) -> None:
        self._path.append(identifier)
        logger.debug(f"Onboarding step pushed: {identifier}")
        self._notifier.notify()

    def _complete(self) -> None:
        already_complete = self.is_complete
        self.is_complete = True
        if already_complete:
            return
        logger.info("Onboarding flow complete")
        if self._on_complete is not None:
            self._on_complete()
        self._notifier.notify()
