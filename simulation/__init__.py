"""
Simulation package - Main simulation engine and runners.

Contains:
- Main simulator orchestrator
- Batch runner for window sweeps
"""

from .simulator import Simulator, SimulatorConfig
from .runner import BatchRunner, RunConfig, run_single_simulation

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'BatchRunner',
    'RunConfig',
    'run_single_simulation'
]
