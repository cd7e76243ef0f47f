"""
Change notification for mutable flow and document state.

State objects own a ChangeNotifier and call notify() after each mutation.
Presentation layers subscribe and re-read whatever they display.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Observer = Callable[[], None]


class ChangeNotifier:
    """Ordered list of observer callbacks."""

    def __init__(self) -> None:
        self._observers: list[Observer] = []

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer. Returns a function that removes it again."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def notify(self) -> None:
        # Copy so observers may unsubscribe while being notified
        for observer in list(self._observers):
            observer()

    def __len__(self) -> int:
        return len(self._observers)
