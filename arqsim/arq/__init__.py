"""
ARQ package - Sliding-window ARQ protocol components.

Contains implementations for:
- Frame and ACK records, sequence space
- Sender with window management and retransmission policies
- Receiver with out-of-order buffering
- Timer management
"""

from .frame import Ack, Frame, FrameBuffer, SequenceSpace
from .sender import ARQSender, RetransmissionPolicy, SenderState, SendWindow
from .receiver import ARQReceiver, ReceiveWindow
from .timer import FrameTimer, TimerExpiry, TimerManager

__all__ = [
    'Ack',
    'Frame',
    'FrameBuffer',
    'SequenceSpace',
    'ARQSender',
    'RetransmissionPolicy',
    'SenderState',
    'SendWindow',
    'ARQReceiver',
    'ReceiveWindow',
    'FrameTimer',
    'TimerExpiry',
    'TimerManager'
]
