"""
Interfaces package for the timing manager.
Contains the contracts shared by the manager and timer substrates.
"""

from .scheduling_interfaces import ScheduledOperation, TimerSubstrate

__all__ = [
    'ScheduledOperation',
    'TimerSubstrate'
]
