"""
Timing manager: runs actions bound to animation labels according to
timing information exported by animaker.

Two playback modes are supported: play() fires each action once at the
start of its animation, frame_apply() samples the animation at a fixed
frame rate and re-runs every action whose animation is active at each
frame.
"""

import math
import time
import threading
import logging
from functools import partial
from numbers import Real
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from .config import DEFAULT_FPS, WAIT_POLL_INTERVAL_S
from .errors import InvalidArgumentError
from .action_registry import Action, ActionRegistry
from .timing_table import TimeUnit, TimingEntry, TimingInfo, TimingTable
from .interfaces.scheduling_interfaces import ScheduledOperation, TimerSubstrate
from .scheduling.frame_sampler import frame_increment_ms, iter_active_frames, plan_frames
from .scheduling.timer_substrate import ThreadedTimerSubstrate

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception, ScheduledOperation], None]


class TimingManager:
    """
    Consumes timing information and runs actions bound to animation labels.

    Every playback call appends to the set of outstanding operations;
    cancel() drops all of them. Actions are resolved when an operation is
    scheduled, so later register() calls only affect later playback.
    """

    def __init__(self,
                 timing_info: Union[TimingInfo, TimingTable],
                 time_unit: Union[str, TimeUnit, None] = None,
                 substrate: Optional[TimerSubstrate] = None):
        """
        Initialize the timing manager.

        Args:
            timing_info: A single animation or a list of animations, each with
                label/start/durn (or an already built TimingTable)
            time_unit: Unit of the timing information: 'ms', 's' or 'm'
                (default 'ms'; ignored for a TimingTable unless given)
            substrate: Timer substrate to schedule on; a threaded one is
                created (and owned) when omitted

        Raises:
            ConfigurationError: Invalid time unit or malformed timing information
        """
        if isinstance(timing_info, TimingTable):
            if time_unit is not None and TimeUnit.parse(time_unit) is not timing_info.time_unit:
                timing_info = TimingTable(list(timing_info.entries), time_unit)
            self._table = timing_info
        else:
            self._table = TimingTable(timing_info, time_unit)

        self._registry = ActionRegistry()

        self._owns_substrate = substrate is None
        self._substrate = substrate if substrate is not None else ThreadedTimerSubstrate()

        # Outstanding operations, keyed by op_id in scheduling order
        self._outstanding: Dict[int, ScheduledOperation] = {}
        self._next_op_id = 0
        self._lock = threading.RLock()

        self._error_callbacks: List[ErrorCallback] = []

        self._stats = {
            'playback_calls': 0,
            'operations_scheduled': 0,
            'operations_fired': 0,
            'operations_cancelled': 0,
            'callbacks_failed': 0,
            'labels_skipped': 0
        }

        logger.info(f"TimingManager initialized with {len(self._table)} animations "
                    f"(unit: {self._table.time_unit.value})")

    # --- Timing information ---

    @property
    def time_unit(self) -> TimeUnit:
        return self._table.time_unit

    @property
    def timing_table(self) -> TimingTable:
        return self._table

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def substrate(self) -> TimerSubstrate:
        return self._substrate

    def to_ms(self, value: float) -> float:
        """Convert a value in the declared time unit to milliseconds."""
        return self._table.to_ms(value)

    # --- Actions ---

    def register(self, actions: Mapping[str, Action], overwrite: bool = False) -> None:
        """
        Register actions to animations.

        Args:
            actions: Mapping of animation label to an action taking the TimingEntry
            overwrite: Replace actions already registered for a label
        """
        self._registry.register(actions, overwrite)

    def register_error_callback(self, callback: ErrorCallback) -> None:
        """Register a callback for actions that raise while running"""
        self._error_callbacks.append(callback)

    # --- Playback ---

    def play(self, delay: float = 0) -> List[ScheduledOperation]:
        """
        Play every animation that has an action, once, at its start time.

        Args:
            delay: Extra delay (in the declared time unit) for the whole animation

        Returns:
            The operations scheduled by this call

        Raises:
            InvalidStateError: If no actions are registered
            InvalidArgumentError: If delay is not a finite number >= 0
        """
        self._registry.ensure_non_empty()
        delay_ms = self.to_ms(self._validate_delay(delay))

        skipped: Set[str] = set()
        plan = []
        for entry in self._table:
            action = self._resolve_action(entry, skipped)
            if action is not None:
                plan.append((entry, action, delay_ms + self.to_ms(entry.start)))

        return self._schedule_all(plan, "play")

    def frame_apply(self, fps: float = DEFAULT_FPS, delay: float = 0) -> List[ScheduledOperation]:
        """
        Play every animation that has an action at a fixed frame rate.

        Each action runs once per frame its animation is active in, so an
        animation spanning k frames has its action run k times. Frames are
        sampled at delay + i * 1000 / fps milliseconds and each sample
        instant is checked against the table as is, so a delay shifts the
        sampling window rather than the animations.

        Args:
            fps: Frames drawn per second
            delay: Extra delay (in the declared time unit) before the first frame

        Returns:
            The operations scheduled by this call

        Raises:
            InvalidStateError: If no actions are registered
            InvalidArgumentError: If fps is not > 0, delay is invalid, or fps
                is so high the frame count exceeds MAX_FRAME_COUNT
        """
        self._registry.ensure_non_empty()
        delay_ms = self.to_ms(self._validate_delay(delay))
        increment = frame_increment_ms(fps)

        frames = plan_frames(self._table.total_duration_ms(), increment, delay_ms)
        if not frames.is_playable:
            logger.info(f"frame_apply: {frames.frame_count} frame(s) at {fps} fps, nothing to play")
            return []

        entries = self._table.entries
        skipped: Set[str] = set()
        plan = []
        for at_ms, indices in iter_active_frames(self._table, frames):
            for index in indices:
                entry = entries[index]
                action = self._resolve_action(entry, skipped)
                if action is not None:
                    plan.append((entry, action, at_ms))

        logger.debug(f"frame_apply: {frames.frame_count} frames at {fps} fps "
                     f"({increment:.3f}ms apart), {len(plan)} invocations")
        return self._schedule_all(plan, "frame_apply")

    def frame_timing(self, t: float = 0) -> List[TimingEntry]:
        """
        Animations active at a given time.

        Args:
            t: Time in *milliseconds*, whatever the declared time unit

        Returns:
            Matching timing entries, in table order
        """
        if t is None:
            t = 0
        return self._table.active_entries(t)

    def cancel(self) -> int:
        """
        Cancel all pending operations queued by this manager.

        Operations that already ran are unaffected. The outstanding set is
        cleared either way.

        Returns:
            Number of operations that were still pending
        """
        with self._lock:
            operations = list(self._outstanding.values())
            cancelled = sum(1 for operation in operations if operation.cancel())
            self._outstanding.clear()
            self._stats['operations_cancelled'] += cancelled

        if cancelled:
            self._substrate.purge_cancelled()
        if operations:
            logger.info(f"TimingManager: Cancelled {cancelled} of {len(operations)} outstanding operations")
        return cancelled

    # --- Monitoring ---

    @property
    def outstanding(self) -> List[ScheduledOperation]:
        with self._lock:
            return list(self._outstanding.values())

    def pending_count(self) -> int:
        with self._lock:
            return len(self._outstanding)

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every outstanding operation has run or been cancelled.

        Only useful with a substrate that runs on its own thread.

        Returns:
            True if nothing is outstanding, False on timeout
        """
        start_time = time.time()
        while True:
            pending = self.pending_count()
            if pending == 0:
                return True
            if timeout is not None and (time.time() - start_time) > timeout:
                logger.warning(f"TimingManager: Wait timeout after {timeout}s with {pending} operations pending")
                return False
            time.sleep(WAIT_POLL_INTERVAL_S)

    def get_stats(self) -> Dict[str, Any]:
        """Get manager statistics"""
        with self._lock:
            return {
                'manager': self._stats.copy(),
                'pending': len(self._outstanding),
                'animations': len(self._table),
                'actions': len(self._registry),
                'time_unit': self._table.time_unit.value
            }

    def cleanup(self) -> None:
        """Cancel everything and stop the substrate if this manager created it."""
        self.cancel()
        if self._owns_substrate:
            self._substrate.shutdown()
        logger.info("TimingManager cleaned up")

    # --- Internal ---

    def _validate_delay(self, delay) -> float:
        if delay is None:
            return 0
        if isinstance(delay, bool) or not isinstance(delay, Real):
            raise InvalidArgumentError(f"Delay must be a number, got {delay!r}")
        if not math.isfinite(delay) or delay < 0:
            raise InvalidArgumentError(f"Delay must be finite and >= 0, got {delay!r}")
        return delay

    def _resolve_action(self, entry: TimingEntry, skipped: Set[str]) -> Optional[Action]:
        action = self._registry.get(entry.label)
        if action is None and entry.label not in skipped:
            skipped.add(entry.label)
            self._stats['labels_skipped'] += 1
            logger.warning(f"Ignoring playback of animation: {entry.label}")
        return action

    def _schedule_all(self, plan: List[Tuple[TimingEntry, Action, float]], mode: str) -> List[ScheduledOperation]:
        operations = []
        with self._lock:
            self._stats['playback_calls'] += 1
            for entry, action, delay_ms in plan:
                operation = ScheduledOperation(
                    op_id=self._next_op_id,
                    entry=entry,
                    delay_ms=delay_ms,
                    body=partial(self._run_action, action)
                )
                self._next_op_id += 1
                self._outstanding[operation.op_id] = operation
                operations.append(operation)
            self._stats['operations_scheduled'] += len(operations)

        for operation in operations:
            self._substrate.schedule(operation)

        logger.info(f"TimingManager: {mode} scheduled {len(operations)} operations "
                    f"({self.pending_count()} outstanding)")
        return operations

    def _run_action(self, action: Action, operation: ScheduledOperation) -> None:
        with self._lock:
            self._stats['operations_fired'] += 1

        try:
            action(operation.entry)
            logger.debug(f"TimingManager: Ran action for '{operation.label}' (operation {operation.op_id})")
        except Exception as e:
            with self._lock:
                self._stats['callbacks_failed'] += 1
            logger.error(f"TimingManager: Error in action for '{operation.label}' "
                         f"(operation {operation.op_id}): {e}")
            self._notify_error_callbacks(e, operation)
        finally:
            # Outstanding until the action has returned, so waiting covers it
            with self._lock:
                self._outstanding.pop(operation.op_id, None)

    def _notify_error_callbacks(self, error: Exception, operation: ScheduledOperation) -> None:
        for callback in self._error_callbacks:
            try:
                callback(error, operation)
            except Exception as e:
                logger.error(f"Error in error callback: {e}")
