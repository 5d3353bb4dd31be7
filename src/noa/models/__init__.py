"""Data models for Monocle sessions."""

from .messages import AudioClip, Message, Mode, Participant
from .states import DeviceState, SessionState
from .versions import VersionInfo

__all__ = [
    "AudioClip",
    "DeviceState",
    "Message",
    "Mode",
    "Participant",
    "SessionState",
    "VersionInfo",
]
