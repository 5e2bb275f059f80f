"""
arqsim - ARQ protocol components for the link simulator.

Subpackages:
- arq: frames, sender and receiver state machines, timers
- channel: link timing and corruption models
- utils: logging and statistics
"""

__version__ = "0.5.1"
