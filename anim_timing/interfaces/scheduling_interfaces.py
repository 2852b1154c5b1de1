"""
Scheduling-related interfaces for the timing manager.
Defines scheduled operations and the contract for the timer substrate
that runs them.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..timing_table import TimingEntry


@dataclass(eq=False)
class ScheduledOperation:
    """
    A deferred, cancellable invocation of one action.

    The action is captured when the operation is created, so registering a
    different action for the label afterwards does not affect it. The
    cancelled/fired flags are flipped under a lock: once cancel() has
    succeeded the body can never start, and once the body has started
    cancel() reports False.
    """
    op_id: int
    entry: TimingEntry
    delay_ms: float
    body: Callable[["ScheduledOperation"], None]
    due_ms: float = 0.0
    cancelled: bool = False
    fired: bool = False
    _flag_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def label(self) -> str:
        return self.entry.label

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> bool:
        """
        Request cancellation.

        Returns:
            True if the operation was still pending and will never run
        """
        with self._flag_lock:
            if self.fired or self.cancelled:
                return False
            self.cancelled = True
            return True

    def run(self) -> bool:
        """
        Run the body unless the operation was cancelled or already ran.

        Returns:
            True if the body was started
        """
        with self._flag_lock:
            if self.fired or self.cancelled:
                return False
            self.fired = True
        self.body(self)
        return True


class TimerSubstrate(ABC):
    """
    Interface for the deferred-execution substrate.

    Implementations order operations by due time; operations with the same
    due time run in the order they were scheduled.
    """

    @abstractmethod
    def now_ms(self) -> float:
        """Current substrate time in milliseconds."""
        pass

    @abstractmethod
    def schedule(self, operation: ScheduledOperation) -> None:
        """
        Run operation after operation.delay_ms milliseconds.

        Sets operation.due_ms on the substrate clock.
        """
        pass

    @abstractmethod
    def pending(self) -> int:
        """Number of queued operations that are not cancelled."""
        pass

    def purge_cancelled(self) -> int:
        """
        Drop cancelled operations still held by the substrate.

        Returns:
            Number of operations dropped
        """
        return 0

    @abstractmethod
    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop running operations and drop anything still queued."""
        pass
