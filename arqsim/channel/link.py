"""
Point-to-Point Link Model

This module models a full-duplex link with finite capacity, a fixed
propagation delay and independent bit errors on the data direction.
Each direction has a single transmitter, so frames handed over while
it is busy wait for the previous frame to leave.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple

from arqsim.errors import InvalidConfiguration
from .corruption import CorruptionSource


class Direction(Enum):
    """Direction of transmission."""
    FORWARD = 0  # Data frames: sender to receiver
    REVERSE = 1  # ACK frames: receiver to sender


@dataclass(frozen=True)
class Link:
    """
    Immutable link parameters.

    Attributes:
        capacity_bps: Link capacity in bits per second
        prop_delay_s: One-way propagation delay in seconds
        bit_error_rate: Per-bit corruption probability of data frames
    """
    capacity_bps: float
    prop_delay_s: float
    bit_error_rate: float = 0.0

    def __post_init__(self):
        """Validate link after initialization."""
        if not (self.capacity_bps > 0 and math.isfinite(self.capacity_bps)):
            raise InvalidConfiguration("capacity", self.capacity_bps, "a finite value > 0")
        if not (self.prop_delay_s >= 0 and math.isfinite(self.prop_delay_s)):
            raise InvalidConfiguration("prop_delay", self.prop_delay_s, "a finite value >= 0")
        if not 0.0 <= self.bit_error_rate <= 1.0:
            raise InvalidConfiguration("ber", self.bit_error_rate, "in [0, 1]")


class Transmission(NamedTuple):
    """Timing and fate of one frame handed to a transmitter."""
    send_time: float     # First bit leaves the transmitter
    arrival_time: float  # Last bit reaches the other end
    corrupted: bool


class LinkModel:
    """
    Link timing and corruption model.

    Attributes:
        link: Link parameters (shared read-only)
        source: Random corruption source
        busy_until: Per-direction time at which the transmitter is free
    """

    def __init__(self, link: Link, source: CorruptionSource):
        """
        Initialize link model.

        Args:
            link: Link parameters
            source: Seeded corruption source
        """
        self.link = link
        self.source = source
        self.busy_until: Dict[Direction, float] = {d: 0.0 for d in Direction}

        # Statistics
        self.frames_offered = {d: 0 for d in Direction}
        self.bits_offered = {d: 0 for d in Direction}
        self.frames_corrupted = 0

    def transmission_time(self, header_bits: int, payload_bits: int) -> float:
        """Time to clock a frame onto the link."""
        return (header_bits + payload_bits) / self.link.capacity_bps

    def total_delay(self, header_bits: int, payload_bits: int) -> float:
        """Transmission plus propagation delay for one direction."""
        return self.transmission_time(header_bits, payload_bits) + self.link.prop_delay_s

    def rtt_estimate(self, data_bits: int, ack_bits: int) -> float:
        """
        Round-trip time of a data frame and its acknowledgment on an idle link.

        Args:
            data_bits: Size of the data frame in bits
            ack_bits: Size of the acknowledgment in bits
        """
        return (
            data_bits / self.link.capacity_bps
            + ack_bits / self.link.capacity_bps
            + 2 * self.link.prop_delay_s
        )

    def frame_error_probability(self, frame_bits: int) -> float:
        """Probability that at least one of `frame_bits` bits is corrupted."""
        return 1.0 - (1.0 - self.link.bit_error_rate) ** frame_bits

    def is_corrupted(self, frame_bits: int) -> bool:
        """
        Decide whether a frame is corrupted.

        One draw per call: each transmitted frame gets a fresh decision.
        """
        p_ok = (1.0 - self.link.bit_error_rate) ** frame_bits
        corrupted = self.source.draw() >= p_ok
        if corrupted:
            self.frames_corrupted += 1
        return corrupted

    def transmit(
        self,
        direction: Direction,
        now: float,
        header_bits: int,
        payload_bits: int
    ) -> Transmission:
        """
        Hand a frame to the transmitter of `direction`.

        Args:
            direction: FORWARD for data frames, REVERSE for ACKs
            now: Current simulation time
            header_bits: Header size in bits
            payload_bits: Payload size in bits

        Returns:
            Transmission with send and arrival times; only FORWARD
            frames can be corrupted
        """
        tx_time = self.transmission_time(header_bits, payload_bits)
        send_time = max(now, self.busy_until[direction])
        self.busy_until[direction] = send_time + tx_time

        corrupted = False
        if direction is Direction.FORWARD:
            corrupted = self.is_corrupted(header_bits + payload_bits)

        self.frames_offered[direction] += 1
        self.bits_offered[direction] += header_bits + payload_bits

        arrival_time = send_time + tx_time + self.link.prop_delay_s
        return Transmission(send_time, arrival_time, corrupted)

    def get_statistics(self) -> dict:
        """Get link statistics."""
        return {
            'data_frames_offered': self.frames_offered[Direction.FORWARD],
            'ack_frames_offered': self.frames_offered[Direction.REVERSE],
            'data_bits_offered': self.bits_offered[Direction.FORWARD],
            'ack_bits_offered': self.bits_offered[Direction.REVERSE],
            'frames_corrupted': self.frames_corrupted,
        }

    def reset(self, seed=None):
        """Reset transmitters, statistics and the corruption source."""
        self.busy_until = {d: 0.0 for d in Direction}
        self.frames_offered = {d: 0 for d in Direction}
        self.bits_offered = {d: 0 for d in Direction}
        self.frames_corrupted = 0
        self.source.reset(seed)
