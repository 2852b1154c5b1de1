"""
Scheduling package for the timing manager.
Contains the timer substrates and the frame sampling used by frame_apply().
"""

from .timer_substrate import ThreadedTimerSubstrate, ManualTimerSubstrate
from .frame_sampler import FramePlan, frame_increment_ms, plan_frames, iter_active_frames

__all__ = [
    'ThreadedTimerSubstrate',
    'ManualTimerSubstrate',
    'FramePlan',
    'frame_increment_ms',
    'plan_frames',
    'iter_active_frames'
]
