"""Chat messages and captured media."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from ..exceptions import DataIntegrityError

if TYPE_CHECKING:
    from PIL import Image


class Mode(Enum):
    """How transcribed speech is used."""
    ASSISTANT = "assistant"    # transcribe, then ask the chat service
    TRANSLATOR = "translator"  # translate speech, show it, no chat request


class Participant(Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    TRANSLATOR = "translator"


@dataclass(frozen=True)
class Message:
    """One entry for the user-facing chat log."""

    text: str
    participant: Participant
    is_error: bool = False
    typing_in_progress: bool = False
    picture: Image.Image | None = None


MONOCLE_SAMPLE_RATE = 8000


@dataclass(frozen=True)
class AudioClip:
    """Mono 16-bit PCM recorded by the device microphone.

    Attributes:
        samples: Signed 16-bit samples
        sample_rate: Samples per second
    """

    samples: np.ndarray
    sample_rate: int = MONOCLE_SAMPLE_RATE

    @classmethod
    def from_pcm16(cls, data: bytes, sample_rate: int = MONOCLE_SAMPLE_RATE) -> AudioClip:
        """Decode little-endian 16-bit PCM.

        Raises:
            DataIntegrityError: If data is not a whole number of samples
        """
        if len(data) % 2:
            raise DataIntegrityError(
                f"Audio buffer is not a multiple of two bytes ({len(data)} bytes)"
            )
        samples = np.frombuffer(data, dtype="<i2").astype(np.int16)
        return cls(samples=samples, sample_rate=sample_rate)

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return len(self.samples) / self.sample_rate

    def to_bytes(self) -> bytes:
        """Encode back to little-endian 16-bit PCM."""
        return self.samples.astype("<i2").tobytes()
