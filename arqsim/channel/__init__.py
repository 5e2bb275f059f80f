"""
Channel package - Link and corruption models.

Contains implementations for:
- Point-to-point link timing (capacity, propagation delay)
- Seeded bit-error corruption source
"""

from .corruption import CorruptionSource
from .link import Direction, Link, LinkModel, Transmission

__all__ = [
    'CorruptionSource',
    'Direction',
    'Link',
    'LinkModel',
    'Transmission'
]
