"""Interfaces of the collaborators the session drives.

Implementations live outside this package (BLE stack, AI service clients,
UI). AI collaborators must raise ServiceError on failure.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from PIL import Image

    from .models import AudioClip, Message, Mode


class Channel(Enum):
    """Logical transport channels."""
    SERIAL = "serial"  # text remote shell
    DATA = "data"      # binary runtime frames


class Transport(Protocol):
    @property
    def max_payload(self) -> int | None:
        """Largest single write, or None if not known yet."""
        ...

    async def send(self, data: bytes, channel: Channel) -> None: ...

    def set_bootloader_scanning(self, enabled: bool) -> None: ...


class Transcriber(Protocol):
    async def transcribe(self, audio: AudioClip, mode: Mode) -> str: ...


class ChatService(Protocol):
    async def converse(self, query: str, mode: Mode) -> str: ...

    def clear_history(self) -> None: ...


class ImageTransformer(Protocol):
    async def transform(self, image: Image.Image, prompt: str) -> Image.Image: ...


class MessageSink(Protocol):
    def put_message(self, message: Message) -> None: ...


class FirmwareFlasher(Protocol):
    async def flash(self, target: Any, on_progress: Callable[[int], None]) -> None:
        """Flash firmware to a device in bootloader mode.

        Args:
            target: Transport handle of the bootloader device
            on_progress: Called with 0-100 as the transfer proceeds
        """
        ...
