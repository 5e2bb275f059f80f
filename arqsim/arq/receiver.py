"""
ARQ Receiver

This module implements the receiver side of the sliding-window ARQ
protocol: out-of-order buffering, in-order delivery and cumulative
ACK generation over the reverse direction of the link.
"""

from typing import Callable, Optional
from dataclasses import dataclass

from arqsim.channel import Direction, LinkModel
from arqsim.scheduler import Event, EventKind, EventScheduler
from arqsim.utils.logger import SimulationLogger, get_logger
from .frame import Ack, Frame, FrameBuffer, SequenceSpace


@dataclass
class ReceiveWindow:
    """
    Sliding window for the receiver.

    Attributes:
        expected: Unbounded number of the next in-order frame
        size: Window size
    """
    expected: int = 0
    size: int = 1

    def in_window(self, offset: int) -> bool:
        """Check if a frame `offset` positions past `expected` can be accepted."""
        return 0 <= offset < self.size


class ARQReceiver:
    """
    Sliding-window ARQ receiver.

    Every valid frame is answered with an ACK carrying the cumulative
    next-expected sequence and the sequence of the frame itself.
    Corrupted frames are dropped without an ACK.

    Attributes:
        window: Receive window state
        buffer: Out-of-order frames waiting for the gap to fill
    """

    def __init__(
        self,
        scheduler: EventScheduler,
        link_model: LinkModel,
        window_size: int,
        ack_bits: int,
        logger: Optional[SimulationLogger] = None,
        on_frame_delivered: Optional[Callable[[Frame], None]] = None,
        on_ack_sent: Optional[Callable[[Ack], None]] = None,
        on_frame_discarded: Optional[Callable[[Frame], None]] = None,
        sequence_space: Optional[SequenceSpace] = None
    ):
        """
        Initialize receiver.

        Args:
            scheduler: Event scheduler
            link_model: Link the ACKs are sent back on
            window_size: Receive window size
            ack_bits: Size of an ACK in bits
            logger: Logger instance
            on_frame_delivered: Callback for every in-order delivery
            on_ack_sent: Callback for every ACK sent
            on_frame_discarded: Callback for corrupted frames
            sequence_space: Wire sequence space, default twice the window
        """
        self.scheduler = scheduler
        self.link_model = link_model
        self.ack_bits = ack_bits
        self.logger = logger or get_logger()

        self.on_frame_delivered = on_frame_delivered
        self.on_ack_sent = on_ack_sent
        self.on_frame_discarded = on_frame_discarded

        self.space = sequence_space or SequenceSpace.for_window(window_size)
        if self.space.size < 2 * window_size:
            raise ValueError("Sequence space must hold at least two windows")
        self.window = ReceiveWindow(size=window_size)
        self.buffer: FrameBuffer[Frame] = FrameBuffer(max_size=window_size)

        # Statistics
        self.frames_received = 0
        self.frames_corrupted = 0
        self.frames_delivered = 0
        self.frames_buffered = 0
        self.duplicate_frames = 0
        self.frames_discarded = 0
        self.acks_sent = 0

    def handle_frame_event(self, event: Event):
        """Scheduler handler for FRAME_ARRIVAL events."""
        self.on_frame_arrival(event.payload)

    def on_frame_arrival(self, frame: Frame) -> Optional[Ack]:
        """
        Process a data frame at the end of its transmission.

        Args:
            frame: Arriving frame

        Returns:
            The ACK sent in response, or None if the frame was dropped
        """
        self.frames_received += 1
        self.logger.frame_received(frame.sequence, not frame.corrupted)

        if frame.corrupted:
            self.frames_corrupted += 1
            if self.on_frame_discarded:
                self.on_frame_discarded(frame)
            return None

        expected_seq = self.space.wrap(self.window.expected)
        offset = self.space.distance(expected_seq, frame.sequence)

        if offset == 0:
            self._deliver(frame)
            self._deliver_in_order()
        elif self.window.in_window(offset):
            number = self.window.expected + offset
            if self.buffer.contains(number):
                self.duplicate_frames += 1
                self.logger.frame_ignored(frame.sequence, expected_seq, "already buffered")
            else:
                self.buffer.add(number, frame)
                self.frames_buffered += 1
                self.logger.frame_ignored(frame.sequence, expected_seq, "out of order, buffered")
        elif self.space.size - offset <= self.window.size:
            # Already delivered: re-ACK, never deliver twice
            self.duplicate_frames += 1
            self.logger.frame_ignored(frame.sequence, expected_seq, "already delivered")
        else:
            # Only reachable when the space holds more than two windows
            self.frames_discarded += 1
            self.logger.frame_ignored(frame.sequence, expected_seq, "outside window")
            return None

        return self._send_ack(frame)

    def _deliver(self, frame: Frame):
        """Hand one frame to the upper layer and advance the window."""
        self.window.expected += 1
        self.frames_delivered += 1
        if self.on_frame_delivered:
            self.on_frame_delivered(frame)

    def _deliver_in_order(self):
        """Deliver buffered frames that are now in sequence."""
        while self.buffer.contains(self.window.expected):
            self._deliver(self.buffer.remove(self.window.expected))

    def _send_ack(self, frame: Frame) -> Ack:
        """Send an ACK for `frame` on the reverse direction."""
        tx = self.link_model.transmit(Direction.REVERSE, self.scheduler.now, self.ack_bits, 0)
        ack = Ack(
            next_expected=self.space.wrap(self.window.expected),
            sequence=frame.sequence,
            header_bits=self.ack_bits,
            send_time=tx.send_time,
            arrival_time=tx.arrival_time
        )
        self.scheduler.schedule(EventKind.ACK_ARRIVAL, tx.arrival_time, ack)

        self.acks_sent += 1
        self.logger.ack_sent(ack.next_expected, ack.sequence)
        if self.on_ack_sent:
            self.on_ack_sent(ack)
        return ack

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'expected': self.window.expected,
            'expected_seq': self.space.wrap(self.window.expected),
            'size': self.window.size,
            'buffered_frames': self.buffer.get_sequence_numbers(),
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'frames_received': self.frames_received,
            'frames_corrupted': self.frames_corrupted,
            'frames_delivered': self.frames_delivered,
            'frames_buffered': self.frames_buffered,
            'duplicate_frames': self.duplicate_frames,
            'frames_discarded': self.frames_discarded,
            'acks_sent': self.acks_sent,
            'buffer_occupancy': self.buffer.size,
        }
