"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Statistics collection (goodput, utilization, efficiency)
- Logging utilities
"""

from .logger import LogLevel, SimulationLogger, get_logger, set_logger
from .metrics import StatisticsCollector, StatsReport

__all__ = [
    'LogLevel',
    'SimulationLogger',
    'get_logger',
    'set_logger',
    'StatisticsCollector',
    'StatsReport'
]
