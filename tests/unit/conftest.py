"""Fake collaborators shared by the unit tests."""

from __future__ import annotations

import pytest

from noa.exceptions import BLEConnectionError, ServiceError
from noa.services import Channel


class FakeTransport:
    def __init__(self, max_payload: int | None = None):
        self.max_payload = max_payload
        self.sent: list[tuple[Channel, bytes]] = []
        self.scanning: list[bool] = []
        self.fail = False

    async def send(self, data: bytes, channel: Channel) -> None:
        if self.fail:
            raise BLEConnectionError("Write failed: link lost")
        self.sent.append((channel, data))

    def set_bootloader_scanning(self, enabled: bool) -> None:
        self.scanning.append(enabled)

    @property
    def serial(self) -> list[bytes]:
        return [data for channel, data in self.sent if channel is Channel.SERIAL]

    @property
    def data(self) -> list[bytes]:
        return [data for channel, data in self.sent if channel is Channel.DATA]


class FakeMessages:
    def __init__(self):
        self.messages = []

    def put_message(self, message) -> None:
        self.messages.append(message)

    @property
    def shown(self):
        """Messages other than typing indicators."""
        return [m for m in self.messages if not m.typing_in_progress]


class FakeTranscriber:
    def __init__(self, text: str = "what time is it", error: str | None = None):
        self.text = text
        self.error = error
        self.calls = []

    async def transcribe(self, audio, mode) -> str:
        self.calls.append((audio, mode))
        if self.error:
            raise ServiceError(self.error)
        return self.text


class FakeChat:
    def __init__(self, response: str = "It is noon", error: str | None = None):
        self.response = response
        self.error = error
        self.calls = []
        self.cleared = 0

    async def converse(self, query: str, mode) -> str:
        self.calls.append((query, mode))
        if self.error:
            raise ServiceError(self.error)
        return self.response

    def clear_history(self) -> None:
        self.cleared += 1


class FakeImageTransformer:
    def __init__(self, error: str | None = None):
        self.error = error
        self.calls = []

    async def transform(self, image, prompt: str):
        self.calls.append((image, prompt))
        if self.error:
            raise ServiceError(self.error)
        return image.copy()


class FakeFlasher:
    def __init__(self, progress: tuple[int, ...] = (), error: str | None = None):
        self.progress = progress
        self.error = error
        self.targets = []

    async def flash(self, target, on_progress) -> None:
        self.targets.append(target)
        for percent in self.progress:
            on_progress(percent)
        if self.error:
            raise RuntimeError(self.error)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(max_payload=200)


@pytest.fixture
def messages() -> FakeMessages:
    return FakeMessages()


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()
