"""FPGA image transfer over the remote shell.

The image is sent as base64 text, one ``update.Fpga.write(...)`` command per
chunk. Each chunk must be confirmed with ``OK^D^D>`` before the next one is
sent; an error reply means the same chunk is sent again.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from pathlib import Path

from ..protocol import (
    FPGA_CHUNK_OVERHEAD,
    build_fpga_chunk_command,
    build_fpga_erase_command,
    build_fpga_finalize_command,
)
from .progress import ProgressReporter, rescale_second_half

_LOGGER = logging.getLogger(__name__)


def compute_chunk_size(max_payload: int) -> int:
    """Largest base64 chunk whose write command fits in one transmission.

    Args:
        max_payload: Largest single write the transport accepts

    Returns:
        Chunk size in base64 characters (a multiple of 12, so whole
        4-character base64 blocks)

    Raises:
        ValueError: If the payload cannot hold even one block
    """
    chunk_size = ((max_payload - FPGA_CHUNK_OVERHEAD) // 3 // 4) * 4 * 3
    if chunk_size <= 0:
        raise ValueError(f"Payload size {max_payload} too small for FPGA chunks")
    return chunk_size


def load_fpga_image(path: str | Path) -> str:
    """Read a binary FPGA image and return it base64-encoded."""
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


@dataclass(frozen=True)
class ImageUpdateState:
    """Position within an FPGA image transfer.

    Attributes:
        image: Base64-encoded image
        chunk_size: Base64 characters per chunk
        rescale: Report progress in the 50-100% range (firmware went first)
        next_chunk: Index of the chunk to send (or being confirmed)
    """

    image: str
    chunk_size: int
    rescale: bool = False
    next_chunk: int = 0

    def __post_init__(self) -> None:
        if not self.image:
            raise ValueError("FPGA image is empty")
        if self.chunk_size <= 0 or self.chunk_size % 4:
            raise ValueError(f"Chunk size must be a positive multiple of 4, got {self.chunk_size}")
        if not 0 <= self.next_chunk <= self.total_chunks:
            raise ValueError(f"Chunk index {self.next_chunk} out of range 0-{self.total_chunks}")

    @classmethod
    def for_payload(cls, image: str, max_payload: int, rescale: bool = False) -> ImageUpdateState:
        """Create a transfer sized for the transport's payload limit."""
        state = cls(image=image, chunk_size=compute_chunk_size(max_payload), rescale=rescale)
        _LOGGER.debug(
            "FPGA update: image=%d bytes, chunk_size=%d, chunks=%d, max_payload=%d",
            len(image),
            state.chunk_size,
            state.total_chunks,
            max_payload,
        )
        return state

    @property
    def total_chunks(self) -> int:
        return -(-len(self.image) // self.chunk_size)

    @property
    def is_complete(self) -> bool:
        return self.next_chunk >= self.total_chunks

    @property
    def current_chunk(self) -> str:
        start = self.next_chunk * self.chunk_size
        return self.image[start:start + self.chunk_size]

    @property
    def percent(self) -> int:
        """Share of the image already confirmed, 0-100."""
        return min(100, 100 * self.next_chunk * self.chunk_size // len(self.image))

    @property
    def reported_percent(self) -> int:
        return rescale_second_half(self.percent, self.rescale)

    def advanced(self) -> ImageUpdateState:
        """State after the current chunk was confirmed."""
        return replace(self, next_chunk=self.next_chunk + 1)


class FpgaUpdateCoordinator:
    """Sends the FPGA erase, chunk and finalize commands and reports progress."""

    def __init__(
            self,
            send: Callable[[bytes], Awaitable[None]],
            progress: ProgressReporter,
            pacing_delay: float = 0.02,
    ):
        """Initialize coordinator.

        Args:
            send: Writes bytes to the shell channel
            progress: Overall update progress
            pacing_delay: Pause (seconds) each time progress advances a point,
                so the transfer loop does not starve other tasks
        """
        self._send = send
        self._progress = progress
        self._pacing_delay = pacing_delay

    async def erase(self, update: ImageUpdateState) -> None:
        _LOGGER.info("Updating FPGA (%d chunks)", update.total_chunks)
        self._progress.start_phase(50 if update.rescale else 0)
        await self._send(build_fpga_erase_command())

    async def send_chunk(self, update: ImageUpdateState) -> None:
        _LOGGER.debug("FPGA update: sending chunk %d/%d", update.next_chunk, update.total_chunks)

        reported = update.reported_percent
        if reported - self._progress.value >= 1:
            self._progress.report(reported)
            await asyncio.sleep(self._pacing_delay)

        await self._send(build_fpga_chunk_command(update.current_chunk))

    async def retry_chunk(self, update: ImageUpdateState) -> None:
        _LOGGER.warning("FPGA update: retrying chunk %d", update.next_chunk)
        await self.send_chunk(update)

    async def finalize(self) -> None:
        _LOGGER.info("FPGA image transmitted, committing and resetting device")
        self._progress.report(100)
        await self._send(build_fpga_finalize_command())
