"""
Retransmission Timer Management

This module provides per-frame timers backed by TIMEOUT_EXPIRY events
on the scheduler. Each start bumps the timer generation, so an expiry
that was already queued when the timer got cancelled or restarted is
recognised as stale and ignored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from arqsim.scheduler import EventKind, EventScheduler


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


@dataclass(frozen=True)
class TimerExpiry:
    """Payload of a TIMEOUT_EXPIRY event."""
    seq_num: int
    generation: int


@dataclass
class FrameTimer:
    """
    Per-frame timer.

    Attributes:
        seq_num: Unbounded frame number the timer guards
        timeout: Timeout duration in seconds
        start_time: Time when timer was (re)started
        state: Current timer state
        restarts: Number of restarts after the first start
        generation: Incremented on each start
        event_id: Scheduler id of the pending expiry
    """
    seq_num: int
    timeout: float
    start_time: float = 0.0
    state: TimerState = TimerState.STOPPED
    restarts: int = 0
    generation: int = 0
    event_id: Optional[int] = None

    def get_expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.timeout


class TimerManager:
    """
    Manages per-frame retransmission timers.

    Attributes:
        scheduler: Event scheduler the expiries are queued on
        default_timeout: Timeout used when none is given
        timers: Active timers by frame number
    """

    def __init__(self, scheduler: EventScheduler, default_timeout: float):
        """
        Initialize timer manager.

        Args:
            scheduler: Event scheduler
            default_timeout: Default timeout duration in seconds
        """
        if default_timeout <= 0:
            raise ValueError("Timeout must be positive")

        self.scheduler = scheduler
        self.default_timeout = default_timeout
        self.timers: Dict[int, FrameTimer] = {}

        # Statistics
        self.total_timers_started = 0
        self.total_timeouts = 0
        self.stale_expiries = 0

    def start_timer(self, seq_num: int, start_time: float, timeout: Optional[float] = None):
        """
        Start (or restart) the timer for a frame.

        Args:
            seq_num: Frame number
            start_time: Time the timer starts counting (not before now)
            timeout: Custom timeout (uses default if None)
        """
        timeout = timeout or self.default_timeout

        timer = self.timers.get(seq_num)
        if timer is None:
            timer = FrameTimer(seq_num=seq_num, timeout=timeout)
            self.timers[seq_num] = timer
            self.total_timers_started += 1
        else:
            if timer.event_id is not None:
                self.scheduler.cancel(timer.event_id)
            timer.timeout = timeout
            timer.restarts += 1

        timer.start_time = start_time
        timer.state = TimerState.RUNNING
        timer.generation += 1
        timer.event_id = self.scheduler.schedule(
            EventKind.TIMEOUT_EXPIRY,
            timer.get_expiry_time(),
            TimerExpiry(seq_num=seq_num, generation=timer.generation)
        )

    def cancel_timer(self, seq_num: int) -> bool:
        """
        Cancel and forget the timer for a frame.

        Returns:
            True if a timer existed
        """
        timer = self.timers.pop(seq_num, None)
        if timer is None:
            return False

        if timer.event_id is not None:
            self.scheduler.cancel(timer.event_id)
        timer.state = TimerState.STOPPED
        return True

    def accept_expiry(self, expiry: TimerExpiry) -> bool:
        """
        Validate a fired expiry against the current timer.

        Args:
            expiry: Payload of the TIMEOUT_EXPIRY event

        Returns:
            True if the expiry belongs to a running timer; False if the
            timer was cancelled or restarted after the event was queued
        """
        timer = self.timers.get(expiry.seq_num)
        if (timer is None or timer.generation != expiry.generation
                or timer.state != TimerState.RUNNING):
            self.stale_expiries += 1
            return False

        timer.state = TimerState.EXPIRED
        timer.event_id = None
        self.total_timeouts += 1
        return True

    def get_timer(self, seq_num: int) -> Optional[FrameTimer]:
        """Get timer for a frame."""
        return self.timers.get(seq_num)

    def is_running(self, seq_num: int) -> bool:
        """Check whether a frame's timer is running."""
        timer = self.timers.get(seq_num)
        return timer is not None and timer.state == TimerState.RUNNING

    def clear_all(self):
        """Cancel every timer."""
        for seq_num in list(self.timers):
            self.cancel_timer(seq_num)

    def get_active_count(self) -> int:
        """Get number of running timers."""
        return sum(1 for t in self.timers.values()
                   if t.state == TimerState.RUNNING)

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_timers_started': self.total_timers_started,
            'total_timeouts': self.total_timeouts,
            'stale_expiries': self.stale_expiries,
            'active_timers': self.get_active_count(),
        }
