"""
Timing information exported by the animaker R package.
Normalizes a single animation or a list of animations into one table and
converts the declared time unit to milliseconds.
"""

import json
import math
import logging
from enum import Enum
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np

from .config import TIME_UNIT_MULTIPLIERS, DEFAULT_TIME_UNIT
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class TimeUnit(Enum):
    """Units that animaker timing information can be expressed in."""
    MILLISECONDS = "ms"
    SECONDS = "s"
    MINUTES = "m"

    @property
    def multiplier(self) -> int:
        return TIME_UNIT_MULTIPLIERS[self.value]

    @classmethod
    def parse(cls, value: Union[str, "TimeUnit", None]) -> "TimeUnit":
        """Resolve a unit string (or TimeUnit) into a TimeUnit."""
        if value is None:
            value = DEFAULT_TIME_UNIT
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for unit in cls:
                if unit.value == value:
                    return unit
        raise ConfigurationError("Invalid 'timeUnit': Must be one of 'ms', 's', 'm'")


@dataclass(frozen=True)
class TimingEntry:
    """
    A single atomic animation: a labelled interval.

    start and durn are expressed in the table's declared time unit.
    """
    label: str
    start: float
    durn: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], index: int = 0) -> "TimingEntry":
        """Build an entry from an exported JSON object, validating its fields."""
        missing = [key for key in ("label", "start", "durn") if key not in data]
        if missing:
            raise ConfigurationError(f"Timing entry {index} is missing field(s): {', '.join(missing)}")
        return cls(label=data["label"], start=data["start"], durn=data["durn"]).validated(index)

    def validated(self, index: int = 0) -> "TimingEntry":
        if not isinstance(self.label, str):
            raise ConfigurationError(f"Timing entry {index}: label must be a string, got {self.label!r}")
        for name in ("start", "durn"):
            value = getattr(self, name)
            # bool is a Real, but never a meaningful time
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ConfigurationError(f"Timing entry {index} ({self.label}): {name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"Timing entry {index} ({self.label}): {name} must be finite and >= 0, got {value!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'start': self.start, 'durn': self.durn}


TimingInfo = Union[TimingEntry, Mapping[str, Any], Sequence[Union[TimingEntry, Mapping[str, Any]]]]


def _normalize_entries(timing_info: TimingInfo) -> Tuple[TimingEntry, ...]:
    # A single exported animation is forced into a list so that the rest of
    # the code only deals with sequences
    if isinstance(timing_info, (TimingEntry, Mapping)):
        timing_info = [timing_info]
    elif isinstance(timing_info, (str, bytes)) or not isinstance(timing_info, Sequence):
        raise ConfigurationError(
            f"Timing information must be an entry or a sequence of entries, got {type(timing_info).__name__}")

    entries = []
    for index, item in enumerate(timing_info):
        if isinstance(item, TimingEntry):
            entries.append(item.validated(index))
        elif isinstance(item, Mapping):
            entries.append(TimingEntry.from_mapping(item, index))
        else:
            raise ConfigurationError(f"Timing entry {index} is not a mapping: {item!r}")
    return tuple(entries)


class TimingTable:
    """
    Immutable, normalized timing table.

    Entry times are kept in the declared unit (callbacks receive the entries
    untouched) while interval bounds are cached in milliseconds as numpy
    arrays for the active-interval queries.
    """

    def __init__(self, timing_info: TimingInfo, time_unit: Union[str, TimeUnit, None] = DEFAULT_TIME_UNIT):
        self._unit = TimeUnit.parse(time_unit)
        self._entries = _normalize_entries(timing_info)

        self._start_ms = np.array([self.to_ms(e.start) for e in self._entries], dtype=float)
        self._end_ms = np.array([self.to_ms(e.start + e.durn) for e in self._entries], dtype=float)

        logger.debug(f"TimingTable - {len(self._entries)} entries in unit '{self._unit.value}'")

    @classmethod
    def from_json(cls, text: str, time_unit: Union[str, TimeUnit, None] = DEFAULT_TIME_UNIT) -> "TimingTable":
        """Parse the JSON produced by animaker's export()."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Timing information is not valid JSON: {e}") from e
        return cls(data, time_unit)

    @property
    def time_unit(self) -> TimeUnit:
        return self._unit

    @property
    def entries(self) -> Tuple[TimingEntry, ...]:
        return self._entries

    @property
    def start_ms(self) -> np.ndarray:
        return self._start_ms

    @property
    def end_ms(self) -> np.ndarray:
        return self._end_ms

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def to_ms(self, value: float) -> float:
        """Convert a value in the declared unit to milliseconds."""
        return value * self._unit.multiplier

    def total_duration_ms(self) -> float:
        """End of the last animation, in milliseconds (0 for an empty table)."""
        if not self._entries:
            return 0.0
        return float(self._end_ms.max())

    def active_mask(self, t_ms) -> np.ndarray:
        """
        Boolean activity for one instant or an array of instants.

        An entry is active on the half-open interval [start, start + durn).
        For an array of n instants the result has shape (n, len(table)).
        """
        t = np.asarray(t_ms, dtype=float)
        if t.ndim == 0:
            return (t >= self._start_ms) & (t < self._end_ms)
        t = t[:, np.newaxis]
        return (t >= self._start_ms[np.newaxis, :]) & (t < self._end_ms[np.newaxis, :])

    def active_indices(self, t_ms: float) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.active_mask(t_ms))]

    def active_entries(self, t_ms: float) -> List[TimingEntry]:
        """Entries active at t_ms (raw milliseconds), in table order."""
        return [self._entries[i] for i in self.active_indices(t_ms)]

    def to_list(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]


def load_timing_file(path, time_unit: Union[str, TimeUnit, None] = DEFAULT_TIME_UNIT) -> TimingTable:
    """Load a timing table from a JSON file written by animaker's export()."""
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    logger.info(f"Loaded timing information from {path}")
    return TimingTable.from_json(text, time_unit)
