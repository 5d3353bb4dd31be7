"""Typed events delivered to the session state machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Connected:
    """Device connected under its normal identity."""
    device_id: str


@dataclass(frozen=True)
class Disconnected:
    """Device (normal identity) disconnected."""
    device_id: str | None = None


@dataclass(frozen=True)
class BootloaderConnected:
    """Device reappeared under its bootloader identity.

    Attributes:
        device_id: Bootloader identity
        target: Transport handle passed through to the firmware flasher
    """
    device_id: str
    target: Any = None


@dataclass(frozen=True)
class TextReceived:
    """Fragment of text from the shell channel."""
    text: str


@dataclass(frozen=True)
class FrameReceived:
    """Notification from the binary command channel."""
    data: bytes


@dataclass(frozen=True)
class FlashProgress:
    """Progress reported by the external firmware flasher (0-100)."""
    percent: int


@dataclass(frozen=True)
class FlashAborted:
    """External firmware flasher failed or was aborted."""
    reason: str = ""


@dataclass(frozen=True)
class ShellEntryDue:
    """Delayed shell entry timer fired.

    Attributes:
        generation: Session generation at the time the timer was scheduled
    """
    generation: int


SessionEvent = (
    Connected
    | Disconnected
    | BootloaderConnected
    | TextReceived
    | FrameReceived
    | FlashProgress
    | FlashAborted
    | ShellEntryDue
)
