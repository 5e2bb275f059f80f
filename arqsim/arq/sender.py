"""
ARQ Sender

This module implements the sender side of the sliding-window ARQ protocol:
window management, per-frame timers, and retransmission under either the
selective-repeat or the go-back-N policy. A window of one frame is plain
stop-and-wait.
"""

from typing import Callable, Dict, List, Optional, Set
from dataclasses import dataclass
from enum import Enum

from arqsim.channel import Direction, LinkModel
from arqsim.errors import ProtocolError
from arqsim.scheduler import Event, EventKind, EventScheduler
from arqsim.utils.logger import SimulationLogger, get_logger
from .frame import Ack, Frame, FrameBuffer, SequenceSpace
from .timer import TimerExpiry, TimerManager


class RetransmissionPolicy(Enum):
    """What to resend when a timer expires."""
    SELECTIVE_REPEAT = "sr"  # Only the frame whose timer expired
    GO_BACK_N = "gbn"        # Every outstanding frame from the window base


class SenderState(Enum):
    """Sender state machine states."""
    IDLE = "idle"
    SENDING = "sending"
    WAITING_ACKS = "waiting_acks"
    DRAINING = "draining"  # No new frames left, waiting for the last ACKs
    DONE = "done"


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Frame numbers are unbounded; they are wrapped only on the wire.

    Attributes:
        base: Oldest unacknowledged frame number
        next_seq: Next new frame number to send
        size: Window size
    """
    base: int = 0
    next_seq: int = 0
    size: int = 1

    @property
    def outstanding(self) -> int:
        """Number of frames sent but not yet slid past."""
        return self.next_seq - self.base

    @property
    def available_slots(self) -> int:
        """Number of available slots in the window."""
        return self.size - self.outstanding

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.available_slots <= 0

    def contains(self, number: int) -> bool:
        """Check if a frame number is outstanding."""
        return self.base <= number < self.next_seq

    def check(self):
        """Raise ProtocolError if the window invariants do not hold."""
        if not 0 <= self.outstanding <= self.size:
            raise ProtocolError(
                f"send window broken: base={self.base}, next={self.next_seq}, size={self.size}"
            )


class ARQSender:
    """
    Sliding-window ARQ sender.

    Drives frames onto the forward direction of the link, schedules their
    arrival at the receiver and keeps one retransmission timer per
    outstanding frame.

    Attributes:
        window: Send window state
        buffer: Latest transmission of every outstanding frame
        timer_manager: Per-frame timers
        policy: Retransmission policy applied on timeout
        state: Current state machine state
    """

    def __init__(
        self,
        scheduler: EventScheduler,
        link_model: LinkModel,
        window_size: int,
        header_bits: int,
        payload_bits: int,
        timeout: float,
        policy: RetransmissionPolicy = RetransmissionPolicy.SELECTIVE_REPEAT,
        max_frames: Optional[int] = None,
        logger: Optional[SimulationLogger] = None,
        on_frame_sent: Optional[Callable[[Frame], None]] = None,
        on_frame_acked: Optional[Callable[[Frame, Optional[float]], None]] = None,
        on_duplicate_ack: Optional[Callable[[Ack], None]] = None,
        on_timeout: Optional[Callable[[int], None]] = None
    ):
        """
        Initialize sender.

        Args:
            scheduler: Event scheduler
            link_model: Link the frames are transmitted on
            window_size: Send window size
            header_bits: Header size of every data frame
            payload_bits: Payload size of every data frame
            timeout: Retransmission timeout in seconds
            policy: Retransmission policy
            max_frames: Stop after this many new frames (None = unlimited)
            logger: Logger instance
            on_frame_sent: Callback for every transmission
            on_frame_acked: Callback when a frame is acknowledged, with an
                RTT sample or None
            on_duplicate_ack: Callback for an ACK that acknowledges nothing new
            on_timeout: Callback when a timer expires
        """
        if window_size < 1:
            raise ValueError("Window size must be at least 1")

        self.scheduler = scheduler
        self.link_model = link_model
        self.header_bits = header_bits
        self.payload_bits = payload_bits
        self.policy = policy
        self.max_frames = max_frames
        self.logger = logger or get_logger()

        # Callbacks
        self.on_frame_sent = on_frame_sent
        self.on_frame_acked = on_frame_acked
        self.on_duplicate_ack = on_duplicate_ack
        self.on_timeout = on_timeout

        # Window and buffer
        self.space = SequenceSpace.for_window(window_size)
        self.window = SendWindow(size=window_size)
        self.buffer: FrameBuffer[Frame] = FrameBuffer(max_size=window_size)
        self.acked: Set[int] = set()  # Selectively acked, still above base

        self.timer_manager = TimerManager(scheduler, timeout)

        self.state = SenderState.IDLE

        # Statistics
        self.frames_sent = 0
        self.new_frames_sent = 0
        self.retransmissions = 0
        self.frames_acked = 0
        self.duplicate_acks = 0
        self.timeouts = 0

    @property
    def exhausted(self) -> bool:
        """True once every new frame allowed by max_frames has been sent."""
        return self.max_frames is not None and self.window.next_seq >= self.max_frames

    def can_send(self) -> bool:
        """Check if sender can transmit a new frame."""
        return (self.state is not SenderState.DONE
                and not self.window.is_full
                and not self.exhausted)

    def start(self):
        """Fill the window with new frames."""
        if self.state is SenderState.DONE:
            return

        while self.can_send():
            self._set_state(SenderState.SENDING)
            number = self.window.next_seq
            self.window.next_seq += 1
            self.new_frames_sent += 1
            self._transmit(number, attempt=0)

        self._update_state()

    def _transmit(self, number: int, attempt: int) -> Frame:
        """
        Put one transmission of frame `number` on the link.

        Args:
            number: Unbounded frame number
            attempt: 0 for a new frame, retransmission count otherwise
        """
        tx = self.link_model.transmit(
            Direction.FORWARD, self.scheduler.now, self.header_bits, self.payload_bits
        )
        frame = Frame(
            sequence=self.space.wrap(number),
            header_bits=self.header_bits,
            payload_bits=self.payload_bits,
            corrupted=tx.corrupted,
            send_time=tx.send_time,
            arrival_time=tx.arrival_time,
            attempt=attempt
        )

        self.buffer.add(number, frame)
        self.scheduler.schedule(EventKind.FRAME_ARRIVAL, tx.arrival_time, frame)
        self.timer_manager.start_timer(number, tx.send_time)

        self.frames_sent += 1
        self.logger.frame_sent(frame.sequence, frame.size_bits, frame.corrupted, frame.is_retransmission)

        if self.on_frame_sent:
            self.on_frame_sent(frame)

        return frame

    def _retransmit(self, number: int):
        """Resend an outstanding frame and restart its timer."""
        previous = self.buffer.get(number)
        attempt = previous.attempt + 1 if previous else 1
        self.logger.retransmit(self.space.wrap(number))
        self.retransmissions += 1
        self._transmit(number, attempt)

    def handle_ack_event(self, event: Event):
        """Scheduler handler for ACK_ARRIVAL events."""
        self.on_ack_arrival(event.payload)

    def handle_timeout_event(self, event: Event):
        """Scheduler handler for TIMEOUT_EXPIRY events."""
        self.on_timeout_expiry(event.payload)

    def on_ack_arrival(self, ack: Ack) -> List[int]:
        """
        Process an acknowledgment.

        Args:
            ack: ACK that reached the sender

        Returns:
            Frame numbers newly acknowledged (empty for a duplicate)
        """
        if self.state is SenderState.DONE:
            return []

        self.logger.ack_received(ack.next_expected, ack.sequence)
        window = self.window
        newly_acked = []

        cumulative = self.space.distance(self.space.wrap(window.base), ack.next_expected)
        if 0 < cumulative <= window.outstanding:
            newly_acked.extend(
                n for n in range(window.base, window.base + cumulative) if n not in self.acked
            )

        if self.policy is RetransmissionPolicy.SELECTIVE_REPEAT:
            offset = self.space.distance(self.space.wrap(window.base), ack.sequence)
            number = window.base + offset
            if offset < window.outstanding and number not in self.acked and number not in newly_acked:
                newly_acked.append(number)

        if not newly_acked:
            self.duplicate_acks += 1
            self.logger.ack_ignored(ack.next_expected, self.space.wrap(window.base),
                                    self.space.wrap(window.next_seq))
            if self.on_duplicate_ack:
                self.on_duplicate_ack(ack)
            return []

        trigger = window.base + self.space.distance(self.space.wrap(window.base), ack.sequence)
        for number in newly_acked:
            self.timer_manager.cancel_timer(number)
            frame = self.buffer.get(number)
            self.acked.add(number)
            self.frames_acked += 1

            # Karn: only the frame that triggered the ACK, and only if never resent
            rtt = None
            if number == trigger and frame is not None and not frame.is_retransmission:
                rtt = self.scheduler.now - frame.send_time

            if self.on_frame_acked and frame is not None:
                self.on_frame_acked(frame, rtt)

        self._slide_window()
        self.start()
        return sorted(newly_acked)

    def on_timeout_expiry(self, expiry: TimerExpiry):
        """
        Handle an expired retransmission timer.

        A timer for a frame that is no longer outstanding, or that was
        restarted after the event was queued, is ignored.
        """
        number = expiry.seq_num
        if (self.state is SenderState.DONE
                or not self.timer_manager.accept_expiry(expiry)
                or not self.window.contains(number)
                or number in self.acked):
            self.logger.timeout_ignored(self.space.wrap(number))
            return

        self.timeouts += 1
        frame = self.buffer.get(number)
        self.logger.timeout(self.space.wrap(number), frame.attempt + 1 if frame else 1)

        if self.on_timeout:
            self.on_timeout(number)

        if self.policy is RetransmissionPolicy.GO_BACK_N:
            for outstanding in range(self.window.base, self.window.next_seq):
                if outstanding not in self.acked:
                    self._retransmit(outstanding)
        else:
            self._retransmit(number)

        self._update_state()

    def _slide_window(self):
        """Slide the window forward past consecutive acknowledged frames."""
        window = self.window
        while window.base < window.next_seq and window.base in self.acked:
            self.acked.discard(window.base)
            self.buffer.remove(window.base)
            window.base += 1

        window.check()
        self.logger.window_update(window.base, window.next_seq, window.size)

    def finish(self):
        """Stop the sender; outstanding timers are dropped."""
        self.timer_manager.clear_all()
        self._set_state(SenderState.DONE)

    def _update_state(self):
        """Derive the state from the window after an operation."""
        self.window.check()
        if self.state is SenderState.DONE:
            return

        if self.exhausted:
            if self.window.outstanding == 0:
                self.finish()
            else:
                self._set_state(SenderState.DRAINING)
        elif self.window.is_full:
            self._set_state(SenderState.WAITING_ACKS)
        else:
            self._set_state(SenderState.SENDING)

    def _set_state(self, state: SenderState):
        if state is not self.state:
            self.logger.state_change(self.state.value, state.value)
            self.state = state

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'size': self.window.size,
            'available': self.window.available_slots,
            'buffered_frames': self.buffer.get_sequence_numbers(),
            'selectively_acked': sorted(self.acked),
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'state': self.state.value,
            'policy': self.policy.value,
            'frames_sent': self.frames_sent,
            'new_frames_sent': self.new_frames_sent,
            'retransmissions': self.retransmissions,
            'frames_acked': self.frames_acked,
            'duplicate_acks': self.duplicate_acks,
            'timeouts': self.timeouts,
            **self.timer_manager.get_statistics()
        }


if __name__ == "__main__":
    from arqsim.channel import CorruptionSource, Link

    print("=" * 60)
    print("ARQ SENDER TEST")
    print("=" * 60)

    scheduler = EventScheduler()
    link_model = LinkModel(Link(capacity_bps=1e6, prop_delay_s=1e-3), CorruptionSource(seed=1))
    sender = ARQSender(
        scheduler, link_model,
        window_size=4, header_bits=320, payload_bits=11680, timeout=0.05,
        on_frame_sent=lambda f: print(f"  [SENT] {f} at t={f.send_time:.6f}")
    )

    sender.start()
    print(f"\nWindow state: {sender.get_window_state()}")

    print("\nACK for frames 0 and 1 (cumulative next=2)...")
    sender.on_ack_arrival(Ack(next_expected=2, sequence=1, header_bits=320))
    print(f"Window state: {sender.get_window_state()}")

    print(f"\nStatistics: {sender.get_statistics()}")
