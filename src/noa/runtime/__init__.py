"""Runtime phase: device commands and AI query flows."""

from .assistant import Assistant, decode_image
from .correlator import QueryCorrelator
from .dispatcher import CommandDispatcher

__all__ = [
    "Assistant",
    "CommandDispatcher",
    "QueryCorrelator",
    "decode_image",
]
