"""Routing of runtime frames from the device's data channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from ..exceptions import DataIntegrityError, InvalidResponseError
from ..models import AudioClip, Participant
from ..protocol import FrameTag, parse_frame
from .assistant import Assistant

_LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Assembles audio/image captures and correlates query acknowledgments.

    Frames are handled synchronously in arrival order; anything that talks
    to an AI service runs as a background task so frames keep flowing.
    """

    def __init__(self, assistant: Assistant):
        self._assistant = assistant
        self._audio = bytearray()
        self._image = bytearray()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def audio_buffer(self) -> bytes:
        return bytes(self._audio)

    @property
    def image_buffer(self) -> bytes:
        return bytes(self._image)

    def handle(self, data: bytes) -> None:
        """Handle one data channel notification.

        Args:
            data: Raw frame, [tag:4][payload]
        """
        try:
            tag, payload = parse_frame(data)
        except InvalidResponseError as e:
            _LOGGER.debug("Ignoring frame: %s", e)
            return

        if tag is None:
            _LOGGER.debug("Ignoring unknown frame tag %r", bytes(data[:4]))
            return

        _LOGGER.debug("Data command from device: %s", tag.value.decode())

        if tag is FrameTag.AUDIO_START:
            # Plain voice query, not a photo prompt
            self._audio.clear()
            self._image.clear()
        elif tag is FrameTag.IMAGE_START:
            self._image.clear()
        elif tag is FrameTag.IMAGE_END:
            _LOGGER.info("Received complete image buffer (%d bytes). Awaiting audio next.", len(self._image))
            self._audio.clear()
        elif tag is FrameTag.AUDIO_DATA:
            self._audio.extend(payload)
        elif tag is FrameTag.IMAGE_DATA:
            self._image.extend(payload)
        elif tag is FrameTag.AUDIO_END:
            self._on_audio_end()
        elif tag is FrameTag.QUERY_ACK:
            query_id = payload.decode("utf-8", errors="replace")
            _LOGGER.info("Received transcription acknowledgment %s", query_id)
            self._spawn(self._assistant.on_query_acknowledged(query_id))
        else:
            _LOGGER.debug("Ignoring host-to-device tag %s from device", tag.value.decode())

    def _on_audio_end(self) -> None:
        _LOGGER.info("Received complete audio buffer (%d bytes)", len(self._audio))
        try:
            audio = AudioClip.from_pcm16(bytes(self._audio))
        except DataIntegrityError as e:
            self._audio.clear()
            self._spawn(self._assistant.report_error(str(e), Participant.USER))
            return
        self._spawn(self._assistant.on_voice(audio, bytes(self._image)))

    def reset(self) -> None:
        """Drop partially assembled captures."""
        self._audio.clear()
        self._image.clear()

    async def wait_idle(self) -> None:
        """Wait for all running query flows to finish."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exception = task.exception()
        if exception is not None:
            _LOGGER.error("Query flow failed: %s", exception, exc_info=exception)
