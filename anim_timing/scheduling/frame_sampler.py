"""
Frame sampling for frame-sampled playback.
Quantizes an animation into fixed steps and works out which animations are
active at each step.
"""

import math
import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

import numpy as np

from ..config import FRAME_CHUNK_SIZE, MAX_FRAME_COUNT
from ..errors import InvalidArgumentError
from ..timing_table import TimingTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FramePlan:
    """
    Sample instants for one frame_apply() call.

    offsets_ms are i * increment and
    times_ms are the same instants shifted by the playback delay. They are
    both where activity is evaluated and what operations get scheduled at.
    """
    increment_ms: float
    delay_ms: float
    total_ms: float
    offsets_ms: np.ndarray

    @property
    def times_ms(self) -> np.ndarray:
        return self.delay_ms + self.offsets_ms

    @property
    def frame_count(self) -> int:
        return int(self.offsets_ms.size)

    @property
    def is_playable(self) -> bool:
        # A single instant is not a frame sequence
        return self.frame_count >= 2


def frame_increment_ms(fps) -> float:
    """Milliseconds between frames; fps must be a finite number > 0."""
    if isinstance(fps, bool):
        raise InvalidArgumentError("Frames per second must be > 0")
    try:
        fps = float(fps)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Frames per second must be a number, got {fps!r}")
    if not math.isfinite(fps) or fps <= 0:
        raise InvalidArgumentError("Frames per second must be > 0")
    return 1000.0 / fps


def plan_frames(total_ms: float, increment_ms: float, delay_ms: float = 0.0,
                max_frames: int = MAX_FRAME_COUNT) -> FramePlan:
    """
    Offsets i * increment for i = 0, 1, ... while i * increment < total_ms.

    Raises:
        InvalidArgumentError: If the plan would exceed max_frames frames
    """
    if total_ms <= 0:
        offsets = np.empty(0, dtype=float)
    else:
        # ceil() can overshoot by one through rounding; the filter settles it
        count = int(math.ceil(total_ms / increment_ms)) + 1
        if count - 1 > max_frames:
            raise InvalidArgumentError(
                f"Frame rate too high: {count - 1} frames over {total_ms:.1f}ms exceeds the limit of {max_frames}")
        offsets = np.arange(count, dtype=float) * increment_ms
        offsets = offsets[offsets < total_ms]
    logger.debug(f"Frame plan: {offsets.size} frames every {increment_ms:.3f}ms over {total_ms:.1f}ms")
    return FramePlan(increment_ms=increment_ms, delay_ms=delay_ms, total_ms=total_ms, offsets_ms=offsets)


def iter_active_frames(table: TimingTable, plan: FramePlan,
                       chunk_size: int = FRAME_CHUNK_SIZE) -> Iterator[Tuple[float, List[int]]]:
    """
    Yield (scheduled time in ms, active entry indices) for each frame.

    Activity is evaluated at the delayed sample instant itself, against the
    table's own (undelayed) intervals, so a delay moves the sampling window
    over the table. Frames with nothing active are skipped. The activity
    matrix is built chunk_size frames at a time.
    """
    if not plan.is_playable or len(table) == 0:
        return
    times = plan.times_ms
    for chunk_start in range(0, times.size, chunk_size):
        chunk = times[chunk_start:chunk_start + chunk_size]
        active = table.active_mask(chunk)
        for frame in np.flatnonzero(active.any(axis=1)):
            yield float(chunk[frame]), [int(i) for i in np.flatnonzero(active[frame])]
