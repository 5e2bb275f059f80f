"""
Event Scheduler

Time-ordered event queue that owns the simulation clock. Event ids are
insertion indices; the heap only holds (timestamp, event_id) keys, so
equal timestamps pop in the order they were scheduled. Only pending
events are stored: an event is dropped from the table when it fires, is
cancelled or is discarded, and stale heap keys are skipped on pop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import heapq

from arqsim.errors import InvalidTime, SchedulingError
from arqsim.utils.logger import SimulationLogger, get_logger


class EventKind(Enum):
    """Types of simulation events."""
    FRAME_ARRIVAL = 0    # Data frame arrives at receiver
    ACK_ARRIVAL = 1      # ACK arrives at sender
    TIMEOUT_EXPIRY = 2   # Retransmission timer fires at sender


@dataclass(frozen=True)
class Event:
    """Simulation event."""
    timestamp: float
    event_id: int
    kind: EventKind
    payload: Any = None


class EventScheduler:
    """
    Discrete-event scheduler.

    Attributes:
        clock: Current simulated time in seconds
        events_scheduled: Number of events ever scheduled (next event id)
        events_dispatched: Number of events handed to handlers
        events_cancelled: Number of events cancelled before firing
        events_discarded: Number of events still pending when a run ended
        exhausted: True if the last run stopped because the queue emptied
    """

    def __init__(self, logger: Optional[SimulationLogger] = None):
        """
        Initialize scheduler.

        Args:
            logger: Logger whose simulated time is kept in sync with the clock
        """
        self.logger = logger or get_logger()

        self.clock = 0.0
        self._pending: Dict[int, Event] = {}
        self._queue: List[Tuple[float, int]] = []
        self._handlers: Dict[EventKind, Callable[[Event], None]] = {}

        self.events_scheduled = 0
        self.events_dispatched = 0
        self.events_cancelled = 0
        self.events_discarded = 0
        self.exhausted = False

    @property
    def now(self) -> float:
        """Current simulated time."""
        return self.clock

    def register(self, kind: EventKind, handler: Callable[[Event], None]):
        """
        Bind the handler that consumes events of `kind`.

        Args:
            kind: Event kind
            handler: Callable receiving the Event
        """
        self._handlers[kind] = handler

    def schedule(self, kind: EventKind, fire_time: float, payload: Any = None) -> int:
        """
        Schedule an event.

        Args:
            kind: Event kind
            fire_time: Absolute simulated time at which the event fires
            payload: Data handed to the handler

        Returns:
            Event id (insertion index)

        Raises:
            InvalidTime: if fire_time is before the current clock
        """
        if not fire_time >= self.clock:
            raise InvalidTime(fire_time, self.clock)

        event_id = self.events_scheduled
        self.events_scheduled += 1
        self._pending[event_id] = Event(timestamp=fire_time, event_id=event_id,
                                        kind=kind, payload=payload)
        heapq.heappush(self._queue, (fire_time, event_id))
        return event_id

    def cancel(self, event_id: int) -> bool:
        """
        Cancel a pending event.

        Args:
            event_id: Id returned by schedule()

        Returns:
            True if the event was pending and is now cancelled; False
            if it already fired, was already cancelled or is unknown
        """
        if self._pending.pop(event_id, None) is None:
            return False

        self.events_cancelled += 1
        # Heap key stays until popped
        return True

    def get_event(self, event_id: int) -> Optional[Event]:
        """Get a pending event by id, None once it fired, was cancelled or discarded."""
        return self._pending.get(event_id)

    @property
    def pending_count(self) -> int:
        """Number of events still waiting to fire."""
        return len(self._pending)

    def _skip_stale(self):
        """Drop keys of cancelled events from the head of the queue."""
        while self._queue and self._queue[0][1] not in self._pending:
            heapq.heappop(self._queue)

    def peek_time(self) -> Optional[float]:
        """Timestamp of the next pending event, or None if the queue is empty."""
        self._skip_stale()
        if not self._queue:
            return None
        return self._queue[0][0]

    def step(self) -> Optional[Event]:
        """
        Pop and dispatch the next pending event.

        Returns:
            The dispatched event, or None if the queue is empty
        """
        self._skip_stale()
        if not self._queue:
            return None

        timestamp, event_id = heapq.heappop(self._queue)
        self.clock = timestamp
        self.logger.set_sim_time(timestamp)

        event = self._pending.pop(event_id)
        handler = self._handlers.get(event.kind)
        if handler is None:
            raise SchedulingError(f"no handler registered for {event.kind.name}")

        self.events_dispatched += 1
        handler(event)
        return event

    def run(self, duration: float) -> float:
        """
        Dispatch events until the clock reaches `duration`.

        Events due at or after `duration` are discarded, and the clock is
        left at `duration`. If the queue empties first the clock stays at
        the time of the last event.

        Args:
            duration: Simulated time at which the run stops

        Returns:
            Final clock value
        """
        self.exhausted = False

        while True:
            next_time = self.peek_time()
            if next_time is None:
                self.exhausted = True
                self.logger.debug("Event queue exhausted", "SCHED")
                break
            if next_time >= duration:
                self.clock = max(self.clock, duration)
                self.logger.set_sim_time(self.clock)
                break
            self.step()

        self._discard_pending()
        return self.clock

    def _discard_pending(self):
        """Drop every event still in the queue."""
        discarded = len(self._pending)
        self.events_discarded += discarded
        self._pending.clear()
        self._queue.clear()
        if discarded:
            self.logger.debug(f"Discarded {discarded} pending events", "SCHED")

    def get_statistics(self) -> dict:
        """Get scheduler statistics."""
        return {
            'events_scheduled': self.events_scheduled,
            'events_dispatched': self.events_dispatched,
            'events_cancelled': self.events_cancelled,
            'events_discarded': self.events_discarded,
            'clock': self.clock,
        }
