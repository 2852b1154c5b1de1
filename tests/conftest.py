import threading

import pytest

from anim_timing import ManualTimerSubstrate, TimingManager


class Recorder:
    """Action that records (substrate time, label) for every call."""
    def __init__(self, substrate=None):
        self.substrate = substrate
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, entry):
        now = self.substrate.now_ms() if self.substrate is not None else None
        with self._lock:
            self.calls.append((now, entry.label))

    @property
    def count(self):
        return len(self.calls)

    def times(self, label=None):
        return [t for t, l in self.calls if label is None or l == label]


@pytest.fixture
def substrate():
    return ManualTimerSubstrate()


@pytest.fixture
def recorder(substrate):
    return Recorder(substrate)


@pytest.fixture
def make_manager(substrate):
    def _make(timing_info, time_unit=None):
        return TimingManager(timing_info, time_unit, substrate=substrate)
    return _make
