"""
Simulation Logger

Trace lines for the protocol components. Every line carries the
simulated time of the event being dispatched, so a verbose run reads
as a timeline of the link.
"""

from typing import Optional, TextIO
from enum import IntEnum
import sys

from arqsim.config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4

    @classmethod
    def from_verbosity(cls, verbosity: int) -> "LogLevel":
        """
        Map a repeated -v count to a log level.

        0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG
        """
        if verbosity <= 0:
            return cls.WARNING
        if verbosity == 1:
            return cls.INFO
        return cls.DEBUG


class SimulationLogger:
    """
    Component logger stamped with simulated time.

    Child loggers share their parent's stream and read the clock from
    the root, which the scheduler updates before each dispatch.

    Attributes:
        name: Component name shown on every line
        level: Minimum log level
        stream: Output stream (stderr when None)
    """

    LEVEL_COLORS = {
        LogLevel.DEBUG: '\033[36m',
        LogLevel.INFO: '\033[32m',
        LogLevel.WARNING: '\033[33m',
        LogLevel.ERROR: '\033[31m',
        LogLevel.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "Simulator",
        level: int = DEFAULT_LOG_LEVEL,
        stream: Optional[TextIO] = None,
        use_colors: Optional[bool] = None
    ):
        """
        Args:
            name: Component name
            level: Minimum log level
            stream: Stream to write to (default: sys.stderr at write time)
            use_colors: ANSI colors, default only when the stream is a TTY
        """
        self.name = name
        self.level = level
        self.stream = stream

        if use_colors is None:
            out = stream if stream is not None else sys.stderr
            use_colors = hasattr(out, "isatty") and out.isatty()
        self.use_colors = use_colors

        self.sim_time: Optional[float] = None
        self._parent: Optional[SimulationLogger] = None

    def child(self, name: str) -> "SimulationLogger":
        """Create a logger for a sub-component sharing level and stream."""
        child = SimulationLogger(name, self.level, self.stream, self.use_colors)
        child._parent = self
        return child

    def set_sim_time(self, time: float):
        """Update the simulated clock shown in the prefix."""
        self.sim_time = time

    def _clock(self) -> Optional[float]:
        if self._parent is not None:
            return self._parent._clock()
        return self.sim_time

    def _format_message(self, level: LogLevel, message: str, category: Optional[str]) -> str:
        clock = self._clock()
        prefix = f"[{clock:12.9f}s]" if clock is not None else "[       setup ]"

        level_name = f"{level.name:<8}"
        if self.use_colors:
            level_name = self.LEVEL_COLORS[level] + level_name + self.RESET

        tag = f" [{category}]" if category else ""
        return f"{prefix} {level_name} [{self.name}]{tag} {message}"

    def _log(self, level: LogLevel, message: str, category: Optional[str] = None):
        if level < self.level:
            return
        out = self.stream if self.stream is not None else sys.stderr
        print(self._format_message(level, message, category), file=out)

    def debug(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for protocol events
    def frame_sent(self, seq_num: int, size_bits: int, corrupted: bool, retransmission: bool):
        """Log data frame sent event."""
        kind = "RETX" if retransmission else "TX"
        fate = " (will be corrupted)" if corrupted else ""
        self.info(f"Sending frame {seq_num}, {size_bits} bits{fate}", kind)

    def frame_received(self, seq_num: int, valid: bool):
        """Log data frame received event."""
        status = "OK" if valid else "CORRUPTED"
        self.info(f"Frame {seq_num} received, {status}", "RX")

    def frame_ignored(self, seq_num: int, expected: int, reason: str):
        """Log a data frame the receiver did not accept."""
        self.debug(f"Ignoring frame {seq_num}, expecting {expected}: {reason}", "RX")

    def ack_sent(self, next_expected: int, seq_num: int):
        """Log ACK sent event."""
        self.info(f"ACK next={next_expected} (for frame {seq_num}) sent", "ACK")

    def ack_received(self, next_expected: int, seq_num: int):
        """Log ACK received event."""
        self.info(f"ACK next={next_expected} (for frame {seq_num}) received", "ACK")

    def ack_ignored(self, next_expected: int, base: int, next_seq: int):
        """Log an ACK that did not acknowledge anything new."""
        self.debug(
            f"Ignoring ACK next={next_expected}, outstanding window is [{base}, {next_seq})",
            "ACK"
        )

    def timeout(self, seq_num: int, retransmit_count: int):
        """Log timeout event."""
        self.info(f"Timeout for frame {seq_num} (retx #{retransmit_count})", "TIMEOUT")

    def timeout_ignored(self, seq_num: int):
        """Log a timer that fired for a frame no longer outstanding."""
        self.debug(f"Ignoring timeout for frame {seq_num}, already acknowledged", "TIMEOUT")

    def retransmit(self, seq_num: int):
        """Log retransmission event."""
        self.info(f"Retransmitting frame {seq_num}", "RETX")

    def window_update(self, base: int, next_seq: int, size: int):
        """Log window update."""
        self.debug(f"Window: base={base}, next={next_seq}, size={size}", "WINDOW")

    def state_change(self, old: str, new: str):
        """Log a state machine transition."""
        self.debug(f"State {old} -> {new}", "STATE")

    def simulation_start(self, params: dict):
        """Log simulation start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log simulation end."""
        self.info(
            f"Simulation ended: Goodput={metrics.get('goodput_bps', 0):.2f} b/s, "
            f"retransmissions={metrics.get('frames_retransmitted', 0)}",
            "SIM"
        )


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: SimulationLogger):
    """Set global logger instance."""
    global _global_logger
    _global_logger = logger
