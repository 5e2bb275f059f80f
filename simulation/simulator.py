"""
Main Simulator - Event-Driven ARQ Link Simulation

This module wires the link model, the sender and receiver state machines
and the statistics collector onto one event scheduler and runs a single
simulation.
"""

from typing import Optional
from dataclasses import dataclass
import math
import time
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arqsim.config import (
    DEFAULT_CAPACITY, DEFAULT_PROP_DELAY, DEFAULT_BER, DEFAULT_DURATION,
    DEFAULT_HEADER_SIZE, DEFAULT_PAYLOAD_SIZE, DEFAULT_WINDOW_SIZE,
    DEFAULT_POLICY, DEFAULT_TIMEOUT_FACTOR, DEFAULT_SEED, ACK_PAYLOAD_SIZE
)
from arqsim.arq.receiver import ARQReceiver
from arqsim.arq.sender import ARQSender, RetransmissionPolicy, SenderState
from arqsim.channel import CorruptionSource, Link, LinkModel
from arqsim.errors import ConfigurationError
from arqsim.scheduler import EventKind, EventScheduler
from arqsim.utils.logger import LogLevel, SimulationLogger
from arqsim.utils.metrics import StatisticsCollector, StatsReport


@dataclass
class SimulatorConfig:
    """Configuration for one simulation run."""
    # Link parameters
    capacity: float = DEFAULT_CAPACITY    # bits per second
    prop_delay: float = DEFAULT_PROP_DELAY  # seconds
    ber: float = DEFAULT_BER

    # Frame sizes (bytes)
    header_size: int = DEFAULT_HEADER_SIZE
    payload_size: int = DEFAULT_PAYLOAD_SIZE

    # ARQ parameters
    window_size: int = DEFAULT_WINDOW_SIZE
    policy: str = DEFAULT_POLICY
    timeout_factor: float = DEFAULT_TIMEOUT_FACTOR  # RTT multiplier for timeout

    # Simulation parameters
    duration: float = DEFAULT_DURATION
    max_frames: Optional[int] = None  # None: send until the duration ends
    seed: int = DEFAULT_SEED
    log_level: int = LogLevel.WARNING

    def validate(self):
        """
        Check every parameter range.

        Raises:
            ConfigurationError: naming the first offending parameter
        """
        if not (self.capacity > 0 and math.isfinite(self.capacity)):
            raise ConfigurationError("capacity", self.capacity, "a finite value > 0")
        if not (self.prop_delay >= 0 and math.isfinite(self.prop_delay)):
            raise ConfigurationError("prop_delay", self.prop_delay, "a finite value >= 0")
        if not 0.0 <= self.ber <= 1.0:
            raise ConfigurationError("ber", self.ber, "in [0, 1]")
        if not (self.duration > 0 and math.isfinite(self.duration)):
            raise ConfigurationError("duration", self.duration, "a finite value > 0")
        if self.header_size < 0:
            raise ConfigurationError("header", self.header_size, ">= 0")
        if self.payload_size <= 0:
            raise ConfigurationError("payload", self.payload_size, "> 0")
        if self.window_size < 1:
            raise ConfigurationError("wsize", self.window_size, ">= 1")
        if not self.timeout_factor > 1.0:
            raise ConfigurationError("timeout_factor", self.timeout_factor, "> 1")
        if self.max_frames is not None and self.max_frames < 1:
            raise ConfigurationError("frames", self.max_frames, ">= 1")
        self.get_policy()

    def get_policy(self) -> RetransmissionPolicy:
        """Parse the policy name."""
        if isinstance(self.policy, RetransmissionPolicy):
            return self.policy
        try:
            return RetransmissionPolicy(str(self.policy).lower())
        except ValueError:
            raise ConfigurationError(
                "policy", self.policy,
                "one of " + ", ".join(p.value for p in RetransmissionPolicy)
            ) from None

    @property
    def header_bits(self) -> int:
        return self.header_size * 8

    @property
    def payload_bits(self) -> int:
        return self.payload_size * 8

    @property
    def ack_bits(self) -> int:
        return (self.header_size + ACK_PAYLOAD_SIZE) * 8

    def make_link(self) -> Link:
        """Create the immutable link description."""
        return Link(capacity_bps=self.capacity, prop_delay_s=self.prop_delay,
                    bit_error_rate=self.ber)

    def get_timeout(self, link_model: LinkModel) -> float:
        """Retransmission timeout: factor x round-trip estimate."""
        rtt = link_model.rtt_estimate(self.header_bits + self.payload_bits, self.ack_bits)
        return self.timeout_factor * rtt


class Simulator:
    """
    Event-driven ARQ simulator.

    Owns one scheduler, one link model, one sender, one receiver and one
    statistics collector. A Simulator runs once; build a new one for
    another run.
    """

    def __init__(self, config: SimulatorConfig, logger: Optional[SimulationLogger] = None):
        """
        Initialize simulator.

        Raises:
            ConfigurationError: if the configuration is invalid
        """
        config.validate()
        self.config = config

        # Create logger
        self.logger = logger or SimulationLogger(name="Sim", level=config.log_level)

        self.scheduler = EventScheduler(logger=self.logger)
        self.link_model = LinkModel(config.make_link(), CorruptionSource(seed=config.seed))
        self.timeout = config.get_timeout(self.link_model)

        # Statistics
        self.stats = StatisticsCollector(capacity_bps=config.capacity)

        self.sender = ARQSender(
            scheduler=self.scheduler,
            link_model=self.link_model,
            window_size=config.window_size,
            header_bits=config.header_bits,
            payload_bits=config.payload_bits,
            timeout=self.timeout,
            policy=config.get_policy(),
            max_frames=config.max_frames,
            logger=self.logger.child("Sender"),
            on_frame_sent=self.stats.record_frame_sent,
            on_frame_acked=self.stats.record_frame_acked,
            on_duplicate_ack=self.stats.record_duplicate_ack,
            on_timeout=self.stats.record_timeout
        )

        self.receiver = ARQReceiver(
            scheduler=self.scheduler,
            link_model=self.link_model,
            window_size=config.window_size,
            ack_bits=config.ack_bits,
            logger=self.logger.child("Receiver"),
            on_frame_delivered=self.stats.record_frame_delivered,
            on_ack_sent=self.stats.record_ack_sent
        )

        self.scheduler.register(EventKind.FRAME_ARRIVAL, self.receiver.handle_frame_event)
        self.scheduler.register(EventKind.ACK_ARRIVAL, self.sender.handle_ack_event)
        self.scheduler.register(EventKind.TIMEOUT_EXPIRY, self.sender.handle_timeout_event)

        self.report: Optional[StatsReport] = None
        self.real_time = 0.0

    def run(self) -> StatsReport:
        """
        Run the simulation.

        Returns:
            End-of-run statistics report
        """
        if self.report is not None:
            raise RuntimeError("Simulator instances run only once")

        self.logger.simulation_start({
            'capacity': self.config.capacity,
            'prop_delay': self.config.prop_delay,
            'ber': self.config.ber,
            'wsize': self.config.window_size,
            'policy': self.sender.policy.value,
            'timeout': self.timeout,
            'duration': self.config.duration,
        })

        sim_start_real = time.time()
        self.stats.start(self.scheduler.now)
        self.sender.start()

        end_time = self.scheduler.run(self.config.duration)

        if self.scheduler.exhausted and self.sender.state is not SenderState.DONE:
            self.logger.warning("Run out of events before the sender finished", "SIM")

        self.sender.finish()
        self.stats.finish(end_time)
        self.real_time = time.time() - sim_start_real

        self.report = self.stats.report()
        self.logger.simulation_end(self.report.as_dict())
        return self.report

    def get_statistics(self) -> dict:
        """Component statistics, useful when debugging a run."""
        return {
            'scheduler': self.scheduler.get_statistics(),
            'link': self.link_model.get_statistics(),
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics(),
            'real_time': self.real_time,
        }


if __name__ == "__main__":
    print("=" * 60)
    print("SIMULATOR TEST")
    print("=" * 60)

    config = SimulatorConfig(window_size=8, ber=1e-5, log_level=LogLevel.WARNING)

    print(f"\nConfiguration:")
    print(f"  Window size: {config.window_size}")
    print(f"  Frame: {config.header_size} + {config.payload_size} bytes")
    print(f"  BER: {config.ber}")

    sim = Simulator(config)
    print(f"  Timeout: {sim.timeout * 1000:.4f} ms")
    print("\nRunning simulation...")

    report = sim.run()

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"  Simulated time: {report.elapsed_time:.4f} s")
    print(f"  Real time: {sim.real_time:.4f} s")
    print(f"  Goodput: {report.goodput_bps / 1e6:.4f} Mbps")
    print(f"  Utilization: {report.utilization * 100:.4f}%")
    print(f"  Retransmissions: {report.frames_retransmitted}")
