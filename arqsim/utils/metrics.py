"""
Statistics Collection

This module observes the protocol through callbacks and turns the
counters into the end-of-run report: goodput, utilization, efficiency
and retransmission figures.
"""

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Dict, List, Optional
import statistics

if TYPE_CHECKING:
    from arqsim.arq.frame import Ack, Frame


@dataclass(frozen=True)
class StatsReport:
    """Immutable end-of-run report."""
    elapsed_time: float
    capacity_bps: float

    # Frame counts (frames_sent counts every transmission)
    frames_sent: int
    new_frames_sent: int
    frames_retransmitted: int
    frames_corrupted: int
    frames_delivered: int
    frames_acked: int
    acks_sent: int
    duplicate_acks: int
    timeouts: int

    # Byte counts
    raw_bytes_transmitted: int
    payload_bytes_transmitted: int
    raw_bytes_delivered: int
    payload_bytes_delivered: int
    raw_bytes_acked: int
    payload_bytes_acked: int
    bits_delivered: int

    # Derived metrics
    goodput_bps: float
    utilization: float
    efficiency: float
    efficiency_with_headers: float
    retransmission_rate: float
    frame_error_rate: float

    rtt: Dict[str, float]

    def as_dict(self) -> dict:
        """Report as a plain dictionary."""
        return asdict(self)


class StatisticsCollector:
    """
    Collects counters for one simulation run.

    Pure observer: it never changes protocol state.

    Attributes:
        capacity_bps: Link capacity used for utilization and efficiency
        start_time: Simulated time the run started
        end_time: Simulated time the run ended
    """

    def __init__(self, capacity_bps: float):
        """
        Initialize statistics collector.

        Args:
            capacity_bps: Link capacity in bits per second
        """
        self.capacity_bps = capacity_bps

        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Frame counters
        self.frames_sent = 0
        self.frames_retransmitted = 0
        self.frames_corrupted = 0
        self.frames_delivered = 0
        self.frames_acked = 0
        self.acks_sent = 0
        self.duplicate_acks = 0
        self.timeouts = 0

        # Byte counters
        self.raw_bytes_transmitted = 0
        self.payload_bytes_transmitted = 0
        self.raw_bytes_delivered = 0
        self.payload_bytes_delivered = 0
        self.raw_bytes_acked = 0
        self.payload_bytes_acked = 0
        self.bits_delivered = 0

        self.rtt_samples: List[float] = []

    def start(self, time: float):
        """Mark simulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark simulation end."""
        self.end_time = time

    @property
    def elapsed_time(self) -> float:
        """Simulated time between start() and finish()."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def record_frame_sent(self, frame: "Frame"):
        """Record one data frame transmission (new or retransmitted)."""
        self.frames_sent += 1
        self.raw_bytes_transmitted += frame.size_bits // 8
        self.payload_bytes_transmitted += frame.payload_bits // 8
        if frame.is_retransmission:
            self.frames_retransmitted += 1
        if frame.corrupted:
            self.frames_corrupted += 1

    def record_frame_delivered(self, frame: "Frame"):
        """Record an in-order delivery at the receiver."""
        self.frames_delivered += 1
        self.bits_delivered += frame.payload_bits
        self.raw_bytes_delivered += frame.size_bits // 8
        self.payload_bytes_delivered += frame.payload_bits // 8

    def record_frame_acked(self, frame: "Frame", rtt: Optional[float] = None):
        """
        Record a frame acknowledged at the sender.

        Args:
            frame: Latest transmission of the acknowledged frame
            rtt: Round-trip sample, None if the frame was retransmitted
        """
        self.frames_acked += 1
        self.raw_bytes_acked += frame.size_bits // 8
        self.payload_bytes_acked += frame.payload_bits // 8
        if rtt is not None:
            self.rtt_samples.append(rtt)

    def record_ack_sent(self, ack: "Ack"):
        """Record an ACK sent by the receiver."""
        self.acks_sent += 1

    def record_duplicate_ack(self, ack: "Ack"):
        """Record an ACK that acknowledged nothing new."""
        self.duplicate_acks += 1

    def record_timeout(self, seq_num: int):
        """Record an expired retransmission timer."""
        self.timeouts += 1

    def calculate_goodput_bps(self) -> float:
        """
        Calculate goodput.

        Goodput = Delivered payload bits / Elapsed simulated time
        """
        elapsed = self.elapsed_time
        if elapsed <= 0:
            return 0.0
        return self.bits_delivered / elapsed

    def calculate_utilization(self) -> float:
        """Goodput as a fraction of link capacity."""
        return self.calculate_goodput_bps() / self.capacity_bps

    def _acked_fraction(self, acked_bytes: int) -> float:
        elapsed = self.elapsed_time
        if elapsed <= 0:
            return 0.0
        return 8 * acked_bytes / (self.capacity_bps * elapsed)

    def calculate_efficiency(self) -> float:
        """Acknowledged payload bits over what the link could carry."""
        return self._acked_fraction(self.payload_bytes_acked)

    def calculate_efficiency_with_headers(self) -> float:
        """Acknowledged frame bits (headers included) over link capacity."""
        return self._acked_fraction(self.raw_bytes_acked)

    def calculate_retransmission_rate(self) -> float:
        """
        Calculate retransmission rate.

        Returns:
            Retransmissions / All frames sent
        """
        if self.frames_sent <= 0:
            return 0.0
        return self.frames_retransmitted / self.frames_sent

    def calculate_frame_error_rate(self) -> float:
        """Corrupted transmissions / All frames sent."""
        if self.frames_sent <= 0:
            return 0.0
        return self.frames_corrupted / self.frames_sent

    def get_rtt_statistics(self) -> Dict[str, float]:
        """
        Get RTT statistics.

        Returns:
            Dictionary with min, max, mean, median, stdev RTT
        """
        if not self.rtt_samples:
            return {
                'min': 0, 'max': 0, 'mean': 0,
                'median': 0, 'stdev': 0, 'samples': 0
            }

        return {
            'min': min(self.rtt_samples),
            'max': max(self.rtt_samples),
            'mean': statistics.mean(self.rtt_samples),
            'median': statistics.median(self.rtt_samples),
            'stdev': statistics.stdev(self.rtt_samples) if len(self.rtt_samples) > 1 else 0,
            'samples': len(self.rtt_samples)
        }

    def report(self) -> StatsReport:
        """Build the end-of-run report."""
        return StatsReport(
            elapsed_time=self.elapsed_time,
            capacity_bps=self.capacity_bps,
            frames_sent=self.frames_sent,
            new_frames_sent=self.frames_sent - self.frames_retransmitted,
            frames_retransmitted=self.frames_retransmitted,
            frames_corrupted=self.frames_corrupted,
            frames_delivered=self.frames_delivered,
            frames_acked=self.frames_acked,
            acks_sent=self.acks_sent,
            duplicate_acks=self.duplicate_acks,
            timeouts=self.timeouts,
            raw_bytes_transmitted=self.raw_bytes_transmitted,
            payload_bytes_transmitted=self.payload_bytes_transmitted,
            raw_bytes_delivered=self.raw_bytes_delivered,
            payload_bytes_delivered=self.payload_bytes_delivered,
            raw_bytes_acked=self.raw_bytes_acked,
            payload_bytes_acked=self.payload_bytes_acked,
            bits_delivered=self.bits_delivered,
            goodput_bps=self.calculate_goodput_bps(),
            utilization=self.calculate_utilization(),
            efficiency=self.calculate_efficiency(),
            efficiency_with_headers=self.calculate_efficiency_with_headers(),
            retransmission_rate=self.calculate_retransmission_rate(),
            frame_error_rate=self.calculate_frame_error_rate(),
            rtt=self.get_rtt_statistics()
        )
