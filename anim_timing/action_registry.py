"""
Registry of actions bound to animation labels.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional

from .errors import InvalidArgumentError, InvalidStateError
from .timing_table import TimingEntry

logger = logging.getLogger(__name__)

Action = Callable[[TimingEntry], None]


class ActionRegistry:
    """
    Maps animation labels to the action run for them.

    The first registration for a label wins unless a later register() call
    asks to overwrite. Not thread-safe: register from the same thread that
    starts playback.
    """

    def __init__(self):
        self._actions: Dict[str, Optional[Action]] = {}

    def register(self, actions: Mapping[str, Action], overwrite: bool = False) -> None:
        """
        Register actions for animations.

        Args:
            actions: Mapping of animation label to action
            overwrite: Replace actions that are already registered

        Raises:
            InvalidArgumentError: If a value is not callable (nothing is registered)
        """
        if not isinstance(actions, Mapping):
            raise InvalidArgumentError(f"Actions must be a mapping of label to callable, got {type(actions).__name__}")
        for label, fn in actions.items():
            if fn is not None and not callable(fn):
                raise InvalidArgumentError(f"Action for animation '{label}' is not callable: {fn!r}")

        for label, fn in actions.items():
            if self._actions.get(label) is None or overwrite:
                self._actions[label] = fn
                logger.debug(f"ActionRegistry: Registered action for '{label}'")
            else:
                logger.debug(f"ActionRegistry: Keeping existing action for '{label}'")

    def get(self, label: str) -> Optional[Action]:
        return self._actions.get(label)

    def labels(self) -> List[str]:
        return [label for label, fn in self._actions.items() if fn is not None]

    def ensure_non_empty(self) -> None:
        """
        Raise InvalidStateError when no animation has an action.

        Labels registered with None do not count: a registry holding only
        None values is empty.
        """
        if not self.labels():
            raise InvalidStateError("No actions assigned to animations, see 'register()'")

    def __contains__(self, label) -> bool:
        return self._actions.get(label) is not None

    def __len__(self) -> int:
        return len(self.labels())
