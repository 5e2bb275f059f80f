"""
Simulator error types.

Configuration errors are reported to the user before a run starts.
Scheduling errors signal a broken internal invariant and are never
caught by the simulator itself.
"""


class ARQSimError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(ARQSimError, ValueError):
    """Out-of-range or malformed configuration value."""

    def __init__(self, parameter: str, value, constraint: str):
        self.parameter = parameter
        self.value = value
        self.constraint = constraint
        super().__init__(f"{parameter}={value!r} is invalid: must be {constraint}")


class InvalidConfiguration(ConfigurationError):
    """Link parameters rejected by the link model."""


class SchedulingError(ARQSimError, RuntimeError):
    """Internal scheduler invariant violation."""


class InvalidTime(SchedulingError):
    """Attempt to schedule an event before the current simulated time."""

    def __init__(self, fire_time: float, clock: float):
        self.fire_time = fire_time
        self.clock = clock
        super().__init__(
            f"cannot schedule event at t={fire_time!r}: clock is already at t={clock!r}"
        )


class ProtocolError(ARQSimError, RuntimeError):
    """Sender or receiver window invariant violation."""
