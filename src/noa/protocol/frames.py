"""Runtime binary frames exchanged on the data channel.

Every frame is a fixed 4-byte ASCII tag followed by an opaque payload:

    [tag:4][payload:variable]
"""

from __future__ import annotations

from enum import Enum

from ..exceptions import InvalidResponseError

TAG_LENGTH = 4


class FrameTag(bytes, Enum):
    """Frame tags. Device-to-host first, then host-to-device."""

    AUDIO_START = b"ast:"
    AUDIO_DATA = b"dat:"
    AUDIO_END = b"aen:"
    IMAGE_START = b"ist:"
    IMAGE_DATA = b"idt:"
    IMAGE_END = b"ien:"
    QUERY_ACK = b"pon:"       # echoes a correlation id back to the host

    QUERY_ID = b"pin:"        # correlation id for a pending query
    RESPONSE = b"res:"        # AI response text
    ERROR = b"err:"           # error text
    IMAGE_ACK = b"ick:"       # image received, device may return to idle


def parse_frame(data: bytes) -> tuple[FrameTag | None, bytes]:
    """Split a frame into tag and payload.

    Args:
        data: Raw notification from the data channel

    Returns:
        (tag, payload); tag is None when the prefix is not a known tag

    Raises:
        InvalidResponseError: If the frame is shorter than a tag
    """
    if len(data) < TAG_LENGTH:
        raise InvalidResponseError(f"Frame too short: {len(data)} bytes (need at least {TAG_LENGTH})")

    prefix = bytes(data[:TAG_LENGTH])
    try:
        tag = FrameTag(prefix)
    except ValueError:
        tag = None
    return tag, bytes(data[TAG_LENGTH:])


def build_frame(tag: FrameTag, payload: bytes = b"") -> bytes:
    return tag.value + payload


def build_text_frames(tag: FrameTag, text: str, max_payload: int) -> list[bytes]:
    """Split text into tagged frames that each fit one transmission unit.

    Text is split on character boundaries so no UTF-8 sequence is cut.

    Args:
        tag: Tag prepended to every frame
        text: Text to send
        max_payload: Largest single write the transport accepts

    Returns:
        Frames in send order (empty for empty text)

    Raises:
        ValueError: If max_payload leaves no room after the tag
    """
    budget = max_payload - TAG_LENGTH
    if budget <= 0:
        raise ValueError(f"Unusable payload size: {max_payload}")

    frames: list[bytes] = []
    current = bytearray()
    for char in text:
        encoded = char.encode("utf-8")
        if current and len(current) + len(encoded) > budget:
            frames.append(build_frame(tag, bytes(current)))
            current.clear()
        current.extend(encoded)
    if current:
        frames.append(build_frame(tag, bytes(current)))
    return frames
