"""Firmware update hand-off to an external bootloader flasher."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..protocol import build_begin_firmware_update_command
from .progress import ProgressReporter, rescale_first_half

if TYPE_CHECKING:
    from ..services import FirmwareFlasher

_LOGGER = logging.getLogger(__name__)


class FirmwareUpdateCoordinator:
    """Reboots the device into its bootloader and tracks the flashing session.

    The coordinator has no retry logic: if flashing fails the bootloader
    disconnects, the transport rescans and a fresh bootloader connection
    starts flashing again.
    """

    def __init__(
            self,
            send: Callable[[bytes], Awaitable[None]],
            progress: ProgressReporter,
            flasher: FirmwareFlasher | None = None,
            set_bootloader_scanning: Callable[[bool], None] | None = None,
    ):
        """Initialize coordinator.

        Args:
            send: Writes bytes to the shell channel
            progress: Overall update progress
            flasher: Performs the actual image transfer once in bootloader mode
            set_bootloader_scanning: Enables/disables looking for the
                bootloader identity on the transport
        """
        self._send = send
        self._progress = progress
        self._flasher = flasher
        self._set_bootloader_scanning = set_bootloader_scanning
        self._task: asyncio.Task[None] | None = None
        self._scanning = False

    @property
    def is_flashing(self) -> bool:
        return self._task is not None and not self._task.done()

    async def initiate(self) -> None:
        """Ask the device to reboot into its bootloader."""
        self._progress.start_phase(0)
        await self._send(build_begin_firmware_update_command())
        self._scan_for_bootloader(True)
        _LOGGER.info("Firmware update initiated")

    def start_flashing(
            self,
            target: Any,
            on_progress: Callable[[int], None],
            on_abort: Callable[[str], None],
    ) -> None:
        """Start the external flasher against the bootloader target.

        Args:
            target: Transport handle of the bootloader device
            on_progress: Called with raw 0-100 progress from the flasher
            on_abort: Called with a reason if flashing fails
        """
        self._progress.start_phase(0)
        if self._flasher is None:
            _LOGGER.warning("Bootloader connected but no firmware flasher is configured")
            return

        _LOGGER.info("Updating firmware...")
        self._task = asyncio.create_task(self._flash(target, on_progress, on_abort))

    async def _flash(
            self,
            target: Any,
            on_progress: Callable[[int], None],
            on_abort: Callable[[str], None],
    ) -> None:
        assert self._flasher is not None
        try:
            await self._flasher.flash(target, on_progress)
        except Exception as e:  # any flasher failure is left to the rescan cycle
            _LOGGER.warning("Firmware flashing failed: %s", e)
            on_abort(str(e))
        else:
            _LOGGER.info("Firmware flashing finished, waiting for device to return")

    def report(self, percent: int, rescale: bool) -> None:
        """Publish flasher progress, halved when an FPGA update follows."""
        _LOGGER.debug("Firmware update progress: %d%%", percent)
        self._progress.report(rescale_first_half(percent, rescale))

    def rescan(self) -> None:
        """Restart the bootloader scan after a failed flash."""
        if self._set_bootloader_scanning:
            self._set_bootloader_scanning(False)
            self._set_bootloader_scanning(True)
        self._scanning = True

    def finish(self) -> None:
        """Device is back under its normal identity; stop bootloader handling."""
        self._scan_for_bootloader(False)
        self._task = None

    def _scan_for_bootloader(self, enabled: bool) -> None:
        if enabled == self._scanning:
            return
        self._scanning = enabled
        if self._set_bootloader_scanning:
            self._set_bootloader_scanning(enabled)
