import asyncio

import pytest

from conftest import FakeFlasher
from noa.protocol import build_begin_firmware_update_command
from noa.updates.firmware import FirmwareUpdateCoordinator
from noa.updates.progress import ProgressReporter


class RecordingSender:
    def __init__(self):
        self.sent = []

    async def __call__(self, data: bytes) -> None:
        self.sent.append(data)


class TestFirmwareUpdateCoordinator:
    """Test the bootloader hand-off."""

    @pytest.mark.asyncio
    async def test_initiate(self):
        send = RecordingSender()
        scanning = []
        coordinator = FirmwareUpdateCoordinator(send, ProgressReporter(), set_bootloader_scanning=scanning.append)

        await coordinator.initiate()

        assert send.sent == [build_begin_firmware_update_command()]
        assert scanning == [True]

    @pytest.mark.asyncio
    async def test_flashing_reports_progress(self):
        flasher = FakeFlasher(progress=(10, 50, 100))
        raw = []
        aborted = []
        coordinator = FirmwareUpdateCoordinator(RecordingSender(), ProgressReporter(), flasher=flasher)

        coordinator.start_flashing("target", on_progress=raw.append, on_abort=aborted.append)
        assert coordinator.is_flashing
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert flasher.targets == ["target"]
        assert raw == [10, 50, 100]
        assert aborted == []
        assert not coordinator.is_flashing

    @pytest.mark.asyncio
    async def test_flasher_failure_aborts(self):
        flasher = FakeFlasher(error="DFU failed")
        aborted = []
        coordinator = FirmwareUpdateCoordinator(RecordingSender(), ProgressReporter(), flasher=flasher)

        coordinator.start_flashing("target", on_progress=lambda p: None, on_abort=aborted.append)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert aborted == ["DFU failed"]

    def test_without_flasher(self):
        coordinator = FirmwareUpdateCoordinator(RecordingSender(), ProgressReporter())
        coordinator.start_flashing("target", on_progress=lambda p: None, on_abort=lambda r: None)
        assert not coordinator.is_flashing

    @pytest.mark.parametrize("rescale,expected", [(True, 30), (False, 60)])
    def test_report_rescale(self, rescale, expected):
        progress = ProgressReporter()
        coordinator = FirmwareUpdateCoordinator(RecordingSender(), progress)
        coordinator.report(60, rescale)
        assert progress.value == expected

    @pytest.mark.asyncio
    async def test_finish_stops_scanning(self):
        scanning = []
        coordinator = FirmwareUpdateCoordinator(
            RecordingSender(), ProgressReporter(), set_bootloader_scanning=scanning.append
        )
        coordinator.finish()
        assert scanning == []

        await coordinator.initiate()
        coordinator.finish()
        assert scanning == [True, False]
