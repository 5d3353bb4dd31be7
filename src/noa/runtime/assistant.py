"""AI query flows driven by device captures."""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import DataIntegrityError, ServiceError, TransportError
from ..models import AudioClip, Message, Mode, Participant
from ..protocol import FrameTag, build_frame, build_text_frames
from ..services import Channel
from .correlator import QueryCorrelator

if TYPE_CHECKING:
    from ..services import ChatService, ImageTransformer, MessageSink, Transcriber, Transport

_LOGGER = logging.getLogger(__name__)

DISPLAY_SIZE = (640, 400)


def decode_image(data: bytes) -> Image.Image:
    """Decode a captured photo (JPEG from the device camera).

    Raises:
        DataIntegrityError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise DataIntegrityError("Photo could not be decoded") from e
    return image


class Assistant:
    """Turns voice and photo captures into chat, translation and image results.

    Every result is put to the message sink; anything not authored by the
    user is also relayed to the device as ``res:`` frames and every error as
    ``err:`` frames.
    """

    def __init__(
            self,
            transport: Transport,
            messages: MessageSink,
            transcriber: Transcriber,
            chat: ChatService,
            image_transformer: ImageTransformer | None = None,
            correlator: QueryCorrelator | None = None,
            mode: Mode = Mode.ASSISTANT,
    ):
        self._transport = transport
        self._messages = messages
        self._transcriber = transcriber
        self._chat = chat
        self._image_transformer = image_transformer
        self.correlator = correlator or QueryCorrelator()
        self._mode = mode

    @property
    def mode(self) -> Mode:
        return self._mode

    @mode.setter
    def mode(self, mode: Mode) -> None:
        if mode != self._mode:
            # New mode, new conversation
            self._chat.clear_history()
        self._mode = mode

    def clear_history(self) -> None:
        self._chat.clear_history()

    async def on_voice(self, audio: AudioClip, image_data: bytes = b"") -> None:
        """Transcribe a voice capture and route the text.

        Args:
            audio: Captured speech
            image_data: Photo captured just before the speech, if any
        """
        mode = self._mode
        _LOGGER.info("Voice received (%.1fs), transcribing...", audio.duration)
        self._typing(Participant.USER if mode is Mode.ASSISTANT else Participant.TRANSLATOR)

        try:
            query = await self._transcriber.transcribe(audio, mode)
        except ServiceError as e:
            await self.report_error(str(e), Participant.USER)
            return

        if image_data:
            await self.generate_image(query, image_data)
        elif mode is Mode.ASSISTANT:
            query_id = self.correlator.register(query)
            await self._send_frame(build_frame(FrameTag.QUERY_ID, query_id.encode("ascii")))
            _LOGGER.info("Sent transcription id to device: %s", query_id)
        else:
            _LOGGER.info("Translation received: %s", query)
            await self.show(query, Participant.TRANSLATOR)

    async def on_query_acknowledged(self, query_id: str) -> None:
        """Device echoed a correlation id; issue the chat request for it."""
        query = self.correlator.resolve(query_id)
        if query is None:
            return
        _LOGGER.info("Sending transcript %s to chat as query: %s", query_id, query)
        await self.submit_query(query)

    async def submit_query(self, query: str) -> None:
        """Show a query as the user's and post the chat reply."""
        await self.show(query, Participant.USER)

        responder = Participant.ASSISTANT if self._mode is Mode.ASSISTANT else Participant.TRANSLATOR
        self._typing(responder)
        try:
            response = await self._chat.converse(query, self._mode)
        except ServiceError as e:
            await self.report_error(str(e), responder)
            return
        _LOGGER.info("Received chat response: %s", response)
        await self.show(response, responder)

    async def generate_image(self, prompt: str, image_data: bytes) -> None:
        """Transform a captured photo using the spoken prompt."""
        # Nothing will come back on the data channel, let the device idle
        await self._send_frame(build_frame(FrameTag.IMAGE_ACK))

        try:
            picture = decode_image(image_data)
        except DataIntegrityError as e:
            await self.report_error(str(e), Participant.USER)
            return

        await self.show(prompt, Participant.USER, picture=picture)

        if self._image_transformer is None:
            await self.report_error("Image generation is not available", Participant.ASSISTANT)
            return

        self._typing(Participant.ASSISTANT)
        try:
            result = await self._image_transformer.transform(picture, prompt)
        except ServiceError as e:
            await self.report_error(str(e), Participant.ASSISTANT)
            return
        # Crop back to the display aspect ratio
        result = ImageOps.fit(result, DISPLAY_SIZE)
        await self.show(prompt, Participant.ASSISTANT, picture=result)

    async def show(self, text: str, participant: Participant, picture: Image.Image | None = None) -> None:
        self._messages.put_message(Message(text=text, participant=participant, picture=picture))
        if participant is not Participant.USER:
            await self._send_text(FrameTag.RESPONSE, text)

    async def report_error(self, text: str, participant: Participant) -> None:
        _LOGGER.error("%s", text)
        self._messages.put_message(Message(text=text, participant=participant, is_error=True))
        await self._send_text(FrameTag.ERROR, text)

    def _typing(self, participant: Participant) -> None:
        self._messages.put_message(Message(text="", participant=participant, typing_in_progress=True))

    async def _send_text(self, tag: FrameTag, text: str) -> None:
        max_payload = self._transport.max_payload
        if max_payload is None:
            _LOGGER.warning("Payload size unknown, not sending %s frames", tag.value.decode())
            return
        try:
            frames = build_text_frames(tag, text, max_payload)
        except ValueError as e:
            _LOGGER.warning("Cannot send text to device: %s", e)
            return
        for frame in frames:
            await self._send_frame(frame)

    async def _send_frame(self, frame: bytes) -> None:
        try:
            await self._transport.send(frame, Channel.DATA)
        except TransportError as e:
            _LOGGER.warning("Failed to send %r frame: %s", frame[:4], e)
