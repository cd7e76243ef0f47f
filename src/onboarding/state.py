"""
Onboarding Cursor State.

Names the conceptual states of a NavigationPath:

    BEFORE_FIRST --next_step--> AT_STEP --next_step--> ... --> COMPLETE
         ^                        |   ^
         |                 append_custom_step / remove_last
         |                        v   |
         +----remove_last---- AT_CUSTOM_STEP
"""

from enum import Enum


class CursorState(Enum):
    """Where the navigation cursor currently sits."""
    BEFORE_FIRST = "before_first"    # Empty path: first declared step is shown
    AT_STEP = "at_step"              # A declared step is on top of the path
    AT_CUSTOM_STEP = "at_custom"     # A runtime-appended custom step is on top
    COMPLETE = "complete"            # Completion was signalled


def cursor_state(path: list, is_complete: bool) -> CursorState:
    """Derive the cursor state from a path and the completion flag."""
    if is_complete:
        return CursorState.COMPLETE
    if not path:
        return CursorState.BEFORE_FIRST
    if path[-1].is_custom:
        return CursorState.AT_CUSTOM_STEP
    return CursorState.AT_STEP
