# anim_timing/__init__.py

from .timing_manager import TimingManager
from .timing_table import TimeUnit, TimingEntry, TimingTable, load_timing_file
from .action_registry import ActionRegistry
from .errors import TimingError, ConfigurationError, InvalidStateError, InvalidArgumentError
from .interfaces import ScheduledOperation, TimerSubstrate
from .scheduling import ThreadedTimerSubstrate, ManualTimerSubstrate

__all__ = [
    'TimingManager',
    'TimeUnit',
    'TimingEntry',
    'TimingTable',
    'load_timing_file',
    'ActionRegistry',
    'TimingError',
    'ConfigurationError',
    'InvalidStateError',
    'InvalidArgumentError',
    'ScheduledOperation',
    'TimerSubstrate',
    'ThreadedTimerSubstrate',
    'ManualTimerSubstrate'
]
