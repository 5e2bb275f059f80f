"""
Frame Records for the ARQ Simulator

This module defines the data frame and acknowledgment records exchanged
over the simulated link, the modular sequence space, and the buffer used
for outstanding and out-of-order frames.
"""

from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, TypeVar

from arqsim.config import SEQUENCE_SPACE_FACTOR


@dataclass(frozen=True)
class SequenceSpace:
    """
    Modular sequence number space.

    The sender and receiver count frames with unbounded integers and only
    wrap them when a number goes on the wire.

    Attributes:
        size: Number of distinct sequence numbers
    """
    size: int

    def __post_init__(self):
        if self.size < 1:
            raise ValueError("Sequence space must hold at least one number")

    @classmethod
    def for_window(cls, window_size: int, factor: int = SEQUENCE_SPACE_FACTOR) -> "SequenceSpace":
        """Sequence space large enough for a window of `window_size` frames."""
        return cls(size=max(window_size, factor * window_size))

    def wrap(self, number: int) -> int:
        """Map an unbounded frame number onto the wire sequence number."""
        return number % self.size

    def distance(self, start: int, seq: int) -> int:
        """Forward distance from sequence `start` to sequence `seq`."""
        return (seq - start) % self.size


@dataclass(frozen=True)
class Frame:
    """
    Data frame as seen on the link.

    Every transmission, including a retransmission, is a separate record
    with its own corruption decision.

    Attributes:
        sequence: Wire sequence number (wrapped)
        header_bits: Header size in bits
        payload_bits: Payload size in bits
        corrupted: Whether bit errors hit this transmission
        send_time: Time the first bit left the sender
        arrival_time: Time the last bit reaches the receiver
        attempt: 0 for the first transmission, n for the n-th retransmission
    """
    sequence: int
    header_bits: int
    payload_bits: int
    corrupted: bool = False
    send_time: float = 0.0
    arrival_time: float = 0.0
    attempt: int = 0

    def __post_init__(self):
        """Validate frame after initialization."""
        if self.sequence < 0:
            raise ValueError("Sequence number must be non-negative")
        if self.header_bits < 0 or self.payload_bits < 0:
            raise ValueError("Frame sizes must be non-negative")

    @property
    def size_bits(self) -> int:
        """Get total frame size (header + payload)."""
        return self.header_bits + self.payload_bits

    @property
    def is_retransmission(self) -> bool:
        """Check if this is a retransmitted frame."""
        return self.attempt > 0

    def __repr__(self) -> str:
        return (f"Frame(seq={self.sequence}, bits={self.size_bits}, "
                f"attempt={self.attempt}, corrupted={self.corrupted})")


@dataclass(frozen=True)
class Ack:
    """
    Acknowledgment sent by the receiver.

    Attributes:
        next_expected: Cumulative ACK, the next in-order sequence wanted
        sequence: Sequence of the data frame whose arrival triggered this ACK
        header_bits: ACK size in bits
        send_time: Time the first bit left the receiver
        arrival_time: Time the last bit reaches the sender
    """
    next_expected: int
    sequence: int
    header_bits: int
    send_time: float = 0.0
    arrival_time: float = 0.0

    @property
    def size_bits(self) -> int:
        """Get total ACK size."""
        return self.header_bits

    def __repr__(self) -> str:
        return f"Ack(next={self.next_expected}, for={self.sequence})"


T = TypeVar("T")


class FrameBuffer(Generic[T]):
    """
    Bounded buffer keyed by frame number.

    Used by the sender (outstanding frames) and the receiver (out-of-order frames).
    """

    def __init__(self, max_size: int):
        """
        Initialize frame buffer.

        Args:
            max_size: Maximum number of frames to buffer
        """
        self.max_size = max_size
        self.buffer: Dict[int, T] = {}

    def add(self, number: int, item: T) -> bool:
        """
        Store an item, replacing any previous one with the same number.

        Returns:
            True if stored, False if buffer full
        """
        if number not in self.buffer and len(self.buffer) >= self.max_size:
            return False

        self.buffer[number] = item
        return True

    def get(self, number: int) -> Optional[T]:
        """Get an item by frame number."""
        return self.buffer.get(number)

    def remove(self, number: int) -> Optional[T]:
        """Remove an item from the buffer."""
        return self.buffer.pop(number, None)

    def contains(self, number: int) -> bool:
        """Check if buffer contains the given frame number."""
        return number in self.buffer

    def clear(self):
        """Clear the buffer."""
        self.buffer.clear()

    @property
    def size(self) -> int:
        """Get number of frames in buffer."""
        return len(self.buffer)

    @property
    def is_full(self) -> bool:
        """Check if buffer is full."""
        return len(self.buffer) >= self.max_size

    @property
    def is_empty(self) -> bool:
        """Check if buffer is empty."""
        return len(self.buffer) == 0

    def get_sequence_numbers(self) -> List[int]:
        """Get list of frame numbers in buffer."""
        return sorted(self.buffer.keys())
