"""
Error types raised by the timing manager.
All of them are raised synchronously, before anything is scheduled.
"""


class TimingError(Exception):
    """Base class for timing manager errors."""


class ConfigurationError(TimingError, ValueError):
    """Invalid time unit or malformed timing information."""


class InvalidStateError(TimingError, RuntimeError):
    """Playback requested while no actions are registered."""


class InvalidArgumentError(TimingError, ValueError):
    """Bad argument to a playback or registration call."""
