"""
Timer substrates that run scheduled operations after a delay.
Both keep a heap ordered by due time, with a counter as tiebreaker so that
operations due at the same time run in scheduling order.
"""

import heapq
import time
import threading
import logging
from typing import List, Optional, Tuple

from ..config import WORKER_JOIN_TIMEOUT_S
from ..interfaces.scheduling_interfaces import ScheduledOperation, TimerSubstrate

logger = logging.getLogger(__name__)


class _HeapTimerSubstrate(TimerSubstrate):
    """Shared heap bookkeeping. Subclasses provide the clock and the runner."""

    def __init__(self):
        # Heap structure: (due_ms, counter, operation)
        self._queue: List[Tuple[float, int, ScheduledOperation]] = []
        self._counter = 0
        self._lock = threading.RLock()

    def _push(self, operation: ScheduledOperation) -> None:
        operation.due_ms = self.now_ms() + max(0.0, operation.delay_ms)
        heapq.heappush(self._queue, (operation.due_ms, self._counter, operation))
        self._counter += 1
        logger.debug(f"Scheduled operation {operation.op_id} ({operation.label}) "
                     f"at {operation.due_ms:.1f}ms (queue size: {len(self._queue)})")

    def _pop_due(self, now_ms: float) -> Optional[ScheduledOperation]:
        """Pop the next due operation, dropping cancelled ones on the way."""
        while self._queue and self._queue[0][0] <= now_ms:
            _, _, operation = heapq.heappop(self._queue)
            if operation.cancelled:
                logger.debug(f"Dropped cancelled operation {operation.op_id}")
                continue
            return operation
        return None

    def pending(self) -> int:
        with self._lock:
            return sum(1 for _, _, op in self._queue if op.pending)

    def queued(self) -> int:
        """Number of heap entries, cancelled ones included."""
        with self._lock:
            return len(self._queue)

    def purge_cancelled(self) -> int:
        with self._lock:
            kept = [item for item in self._queue if not item[2].cancelled]
            dropped = len(self._queue) - len(kept)
            if dropped:
                heapq.heapify(kept)
                self._queue = kept
                logger.debug(f"Purged {dropped} cancelled operations ({len(kept)} queued)")
            return dropped

    def _clear(self) -> int:
        dropped = len(self._queue)
        self._queue.clear()
        return dropped


class ThreadedTimerSubstrate(_HeapTimerSubstrate):
    """
    Runs operations on a single daemon worker thread.

    The worker sleeps on a condition until the earliest operation is due or
    a new one is scheduled. Operation bodies run outside the lock, so they
    may schedule or cancel further operations.
    """

    def __init__(self, name: str = "TimingManager-Timer"):
        super().__init__()
        self._name = name
        self._condition = threading.Condition(self._lock)
        self._running = False
        self._worker: Optional[threading.Thread] = None

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def schedule(self, operation: ScheduledOperation) -> None:
        with self._condition:
            self._ensure_worker()
            self._push(operation)
            self._condition.notify()

    def purge_cancelled(self) -> int:
        with self._condition:
            dropped = super().purge_cancelled()
            # Wake the worker so it stops waiting on a purged due time
            self._condition.notify()
        return dropped

    def is_running(self) -> bool:
        return self._running

    def _ensure_worker(self) -> None:
        if self._running:
            return
        self._running = True
        self._worker = threading.Thread(target=self._worker_loop, daemon=True, name=self._name)
        self._worker.start()
        logger.info(f"{self._name} worker started")

    def _worker_loop(self) -> None:
        while True:
            with self._condition:
                operation = None
                while self._running:
                    operation = self._pop_due(self.now_ms())
                    if operation is not None:
                        break
                    if self._queue:
                        wait_s = (self._queue[0][0] - self.now_ms()) / 1000.0
                        self._condition.wait(timeout=max(wait_s, 0.0))
                    else:
                        self._condition.wait()
                if not self._running:
                    break

            # Run outside the lock
            try:
                operation.run()
            except Exception as e:
                # The manager reports action errors itself; this only guards the worker
                logger.error(f"{self._name}: Error running operation {operation.op_id}: {e}")

        logger.info(f"{self._name} worker stopped")

    def shutdown(self, timeout: Optional[float] = WORKER_JOIN_TIMEOUT_S) -> None:
        with self._condition:
            if not self._running:
                return
            self._running = False
            dropped = self._clear()
            self._condition.notify_all()
        if dropped:
            logger.info(f"{self._name}: Dropped {dropped} queued operations on shutdown")

        worker = self._worker
        if worker is not None and worker is not threading.current_thread() and worker.is_alive():
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning(f"{self._name} worker did not stop cleanly")


class ManualTimerSubstrate(_HeapTimerSubstrate):
    """
    Virtual-clock substrate: nothing runs until the clock is advanced.

    Operations run on the thread calling advance(), in due-time order.
    """

    def __init__(self, start_ms: float = 0.0):
        super().__init__()
        self._now_ms = start_ms

    def now_ms(self) -> float:
        return self._now_ms

    def schedule(self, operation: ScheduledOperation) -> None:
        with self._lock:
            self._push(operation)

    def advance(self, ms: float) -> int:
        """
        Advance the virtual clock, running every operation that falls due.

        Returns:
            Number of operations run
        """
        if ms < 0:
            raise ValueError(f"Cannot move the clock backwards ({ms}ms)")
        target = self._now_ms + ms
        ran = 0
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                # Move the clock to the operation's due time before running it
                self._now_ms = max(self._now_ms, self._queue[0][0])
                operation = self._pop_due(self._now_ms)
            if operation is not None and operation.run():
                ran += 1
        self._now_ms = target
        return ran

    def run_all(self) -> int:
        """Advance until the queue is empty."""
        ran = 0
        while True:
            with self._lock:
                if not self._queue:
                    return ran
                remaining = self._queue[0][0] - self._now_ms
            ran += self.advance(max(remaining, 0.0))

    def shutdown(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            dropped = self._clear()
        logger.debug(f"ManualTimerSubstrate: Dropped {dropped} queued operations on shutdown")
