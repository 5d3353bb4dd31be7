"""Monocle session state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .config import SessionConfig
from .exceptions import TransportError
from .models import DeviceState, Mode, VersionInfo, events, states
from .protocol import (
    COMMAND_OK,
    ERROR_MARKER,
    RAW_REPL_BANNER,
    RESPONSE_END,
    StreamMatcher,
    build_app_version_query,
    build_execute_signal,
    build_firmware_version_query,
    build_fpga_version_query,
    build_raw_repl_sequence,
    build_write_file_command,
    is_response_complete,
    parse_firmware_version,
    parse_fpga_version,
)
from .runtime import Assistant, CommandDispatcher
from .scripts import ScriptDeploymentQueue, dequeue
from .services import Channel
from .updates import (
    FirmwareUpdateCoordinator,
    FpgaUpdateCoordinator,
    ImageUpdateState,
    ProgressReporter,
    load_fpga_image,
)

if TYPE_CHECKING:
    from .services import (
        ChatService,
        FirmwareFlasher,
        ImageTransformer,
        MessageSink,
        Transcriber,
        Transport,
    )

_LOGGER = logging.getLogger(__name__)


class SessionStateMachine:
    """Drives a Monocle from connection to a running app.

    All events go through one queue and are handled one at a time by
    run(), so state transitions never interleave. Tests and embedders that
    drive the machine themselves can await handle() directly instead.

    Usage:
        session = SessionStateMachine(transport, messages, transcriber, chat, config=config)
        connection.on_event = session.post
        await session.run()
    """

    def __init__(
            self,
            transport: Transport,
            messages: MessageSink,
            transcriber: Transcriber,
            chat: ChatService,
            *,
            image_transformer: ImageTransformer | None = None,
            flasher: FirmwareFlasher | None = None,
            config: SessionConfig | None = None,
            script_loader: Callable[[], ScriptDeploymentQueue] | None = None,
            fpga_image_loader: Callable[[], str] | None = None,
            on_device_state: Callable[[DeviceState], None] | None = None,
            on_progress: Callable[[int], None] | None = None,
    ):
        """Initialize session.

        Args:
            transport: BLE link to the device
            messages: Receives chat log entries
            transcriber: Speech-to-text service
            chat: Chat completion service
            image_transformer: Image-to-image service (photo queries)
            flasher: Bootloader firmware flasher
            config: Session settings (default: SessionConfig())
            script_loader: Builds the script bundle; defaults to loading
                config.script_names from config.script_directory
            fpga_image_loader: Returns the base64 FPGA image; defaults to
                reading config.fpga_image_path
            on_device_state: Called when the published device state changes
            on_progress: Called when update progress changes

        Raises:
            ValueError: If no script source is configured
        """
        self._config = config or SessionConfig()
        self._transport = transport
        self._script_loader = script_loader or self._default_script_loader()
        self._fpga_image_loader = fpga_image_loader or self._default_fpga_image_loader()
        self._on_device_state = on_device_state

        self._queue: asyncio.Queue[events.SessionEvent] = asyncio.Queue()
        self._state: states.SessionState = states.Disconnected()
        self._generation = 0
        self._matcher: StreamMatcher | None = None
        self._end_matcher: StreamMatcher | None = None
        self._version_mismatch = False
        self._response = ""
        self._scripts: ScriptDeploymentQueue | None = None
        self._device_state = DeviceState.NOT_READY
        self._connected = False

        self._progress = ProgressReporter(on_progress)
        self._firmware = FirmwareUpdateCoordinator(
            self._send_serial,
            self._progress,
            flasher=flasher,
            set_bootloader_scanning=transport.set_bootloader_scanning,
        )
        self._fpga = FpgaUpdateCoordinator(
            self._send_serial,
            self._progress,
            pacing_delay=self._config.chunk_pacing_delay,
        )
        self.assistant = Assistant(
            transport,
            messages,
            transcriber,
            chat,
            image_transformer=image_transformer,
        )
        self._dispatcher = CommandDispatcher(self.assistant)
        self._versions = self._unknown_versions()

    def _default_script_loader(self) -> Callable[[], ScriptDeploymentQueue]:
        config = self._config
        if config.script_directory is None:
            raise ValueError("No script_loader given and config.script_directory is not set")

        def load() -> ScriptDeploymentQueue:
            return ScriptDeploymentQueue.from_directory(
                config.script_directory,
                names=config.script_names,
                entry_point=config.entry_point,
                version_variable=config.version_variable,
            )
        return load

    def _default_fpga_image_loader(self) -> Callable[[], str] | None:
        path = self._config.fpga_image_path
        if path is None:
            return None
        return lambda: load_fpga_image(path)

    def _unknown_versions(self) -> VersionInfo:
        return VersionInfo(
            required_firmware_version=self._config.required_firmware_version,
            required_fpga_version=self._config.required_fpga_version,
        )

    # Public state

    @property
    def state(self) -> states.SessionState:
        return self._state

    @property
    def generation(self) -> int:
        """Incremented on every transition."""
        return self._generation

    @property
    def device_state(self) -> DeviceState:
        return self._device_state

    @property
    def update_progress(self) -> int:
        return self._progress.value

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def versions(self) -> VersionInfo:
        return self._versions

    @property
    def mode(self) -> Mode:
        return self.assistant.mode

    @mode.setter
    def mode(self, mode: Mode) -> None:
        self.assistant.mode = mode

    async def submit_query(self, query: str) -> None:
        """Send a query typed on the host straight to the chat service."""
        _LOGGER.info("Sending host query to chat: %s", query)
        await self.assistant.submit_query(query)

    def clear_history(self) -> None:
        self.assistant.clear_history()

    async def wait_idle(self) -> None:
        """Wait for background query flows to finish."""
        await self._dispatcher.wait_idle()

    # Event loop

    def post(self, event: events.SessionEvent) -> None:
        """Queue an event for run(). Safe to use as a transport callback."""
        self._queue.put_nowait(event)

    async def run(self) -> None:
        """Handle queued events forever (cancel the task to stop)."""
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            finally:
                self._queue.task_done()

    async def handle(self, event: events.SessionEvent) -> None:
        """Handle one event. Must not be called concurrently."""
        try:
            await self._dispatch(event)
        except TransportError as e:
            _LOGGER.warning("Transport error in %s: %s", type(self._state).__name__, e)
            await self._transition(states.Disconnected())

    async def _dispatch(self, event: events.SessionEvent) -> None:
        if isinstance(event, events.TextReceived):
            await self._on_text(event.text)
        elif isinstance(event, events.FrameReceived):
            self._on_frame(event.data)
        elif isinstance(event, events.Connected):
            await self._on_connected(event)
        elif isinstance(event, events.Disconnected):
            await self._on_disconnected()
        elif isinstance(event, events.BootloaderConnected):
            await self._on_bootloader_connected(event)
        elif isinstance(event, events.ShellEntryDue):
            await self._on_shell_entry_due(event)
        elif isinstance(event, events.FlashProgress):
            if isinstance(self._state, states.PerformingFirmwareUpdate):
                self._firmware.report(event.percent, self._state.rescale)
        elif isinstance(event, events.FlashAborted):
            _LOGGER.warning("Firmware flashing aborted (%s), waiting for bootloader to reappear", event.reason)
            self._firmware.rescan()
        else:
            raise TypeError(f"Unknown event {event!r}")

    # Transport events

    async def _on_connected(self, event: events.Connected) -> None:
        _LOGGER.info("Device %s connected", event.device_id)
        did_finish_firmware_update = isinstance(self._state, states.PerformingFirmwareUpdate)
        self._firmware.finish()
        await self._transition(states.EnteringRemoteShell(did_finish_firmware_update))

    async def _on_disconnected(self) -> None:
        _LOGGER.info("Device disconnected")
        if isinstance(self._state, states.FIRMWARE_UPDATE_STATES):
            # Expected while rebooting into and out of the bootloader. The
            # bootloader may even connect before this event arrives.
            return
        await self._transition(states.Disconnected())

    async def _on_bootloader_connected(self, event: events.BootloaderConnected) -> None:
        _LOGGER.info("Bootloader %s connected", event.device_id)
        state = self._state
        if isinstance(state, states.FIRMWARE_UPDATE_STATES):
            rescale = state.rescale
        else:
            # Device was already stuck in its bootloader; whether an FPGA
            # update follows is unknown, so assume not.
            rescale = False
        await self._transition(states.PerformingFirmwareUpdate(target=event.target, rescale=rescale))

    async def _on_shell_entry_due(self, event: events.ShellEntryDue) -> None:
        state = self._state
        if event.generation != self._generation or not isinstance(state, states.EnteringRemoteShell):
            _LOGGER.debug("Ignoring stale shell entry timer (generation %d)", event.generation)
            return
        await self._transport.send(build_raw_repl_sequence(), Channel.SERIAL)
        self._connected = True
        await self._transition(states.AwaitingRemoteShellConfirmation(state.did_finish_firmware_update))

    def _on_frame(self, data: bytes) -> None:
        if not isinstance(self._state, states.Running):
            _LOGGER.debug("Ignoring %d byte frame outside running state", len(data))
            return
        self._dispatcher.handle(data)

    # Shell text

    async def _on_text(self, text: str) -> None:
        _LOGGER.debug("Serial data from device: %r", text)
        state = self._state

        if isinstance(state, states.AwaitingRemoteShellConfirmation):
            if self._matcher.feed(text):
                _LOGGER.info("Raw REPL detected")
                await self._transition(states.AwaitingFirmwareVersion(state.did_finish_firmware_update))

        elif isinstance(state, states.AwaitingFirmwareVersion):
            self._response += text
            if is_response_complete(self._response):
                version = parse_firmware_version(self._response)
                _LOGGER.info("Firmware version: %s", version or "unknown")
                await self._transition(states.AwaitingFpgaVersion(version, state.did_finish_firmware_update))

        elif isinstance(state, states.AwaitingFpgaVersion):
            self._response += text
            if is_response_complete(self._response):
                fpga_version = parse_fpga_version(self._response)
                _LOGGER.info("FPGA version: %s", fpga_version or "unknown")
                self._versions = VersionInfo(
                    required_firmware_version=self._config.required_firmware_version,
                    required_fpga_version=self._config.required_fpga_version,
                    current_firmware_version=state.firmware_version,
                    current_fpga_version=fpga_version,
                )
                await self._update_or_proceed(state.did_finish_firmware_update)

        elif isinstance(state, states.AwaitingAppVersion):
            await self._on_app_version_text(text)

        elif isinstance(state, states.DeployingScripts):
            outcome = self._feed_command_reply(text)
            if outcome is True:
                _LOGGER.info("Script %s successfully written", state.current.name)
                script, pending = dequeue(state.pending)
                if script is None:
                    _LOGGER.info("All scripts written. Starting program...")
                    await self._transition(states.Running())
                else:
                    await self._transition(states.DeployingScripts(script, pending))
            elif outcome is False:
                _LOGGER.warning("Writing %s failed, sending it again", state.current.name)
                await self._transition(states.DeployingScripts(state.current, state.pending))

        elif isinstance(state, states.ErasingFpga):
            outcome = self._feed_command_reply(text)
            if outcome is True:
                _LOGGER.info("FPGA successfully disabled and erased")
                await self._transition(states.TransferringFpgaChunks(state.update))
            elif outcome is False:
                _LOGGER.warning("FPGA erase failed, retrying")
                await self._transition(states.ErasingFpga(state.update))

        elif isinstance(state, states.TransferringFpgaChunks):
            outcome = self._feed_command_reply(text)
            if outcome is True:
                update = state.update.advanced()
                if update.is_complete:
                    await self._transition(states.FinalizingFpga())
                else:
                    await self._transition(states.TransferringFpgaChunks(update))
            elif outcome is False:
                self._matcher.reset()
                self._response = ""
                await self._fpga.retry_chunk(state.update)

        else:
            _LOGGER.debug("Ignoring shell text in %s", type(state).__name__)

    def _feed_command_reply(self, text: str) -> bool | None:
        """Track the reply to a command that prints ``OK^D^D>`` on success.

        A failing command prints a traceback that may mention "Error" more
        than once; it only counts as failed once its closing ``^D>`` arrives.

        Returns:
            True on success, False once a failed reply is complete, None
            while the reply is still arriving
        """
        if self._matcher.feed(text):
            return True
        self._response += text
        error_at = self._response.find(ERROR_MARKER)
        if error_at < 0:
            # Enough to find a marker split across fragments
            self._response = self._response[-(len(ERROR_MARKER) - 1):]
            return None
        if RESPONSE_END in self._response[error_at:]:
            return False
        return None

    async def _on_app_version_text(self, text: str) -> None:
        scripts = self._scripts
        if self._matcher.feed(text):
            _LOGGER.info("App already running on device!")
            await self._transition(states.Running())
            return
        self._end_matcher.feed(text)

        # A successful reply is "OK<version>\r\n^D^D>". Seeing the prompt, or
        # as many characters as that reply, without the expected version
        # means a different (or no) version is installed.
        expected_length = len("OK") + len(scripts.version)
        if not self._version_mismatch and (
                ">" in text or self._matcher.characters_processed >= expected_length
        ):
            _LOGGER.info("App not running on device. Will transmit scripts.")
            self._version_mismatch = True

        # The rest of the reply (often a NameError traceback) must not be
        # read as the reply to the first file write
        if self._version_mismatch and self._end_matcher.matched:
            script, pending = dequeue(scripts.files)
            await self._transition(states.DeployingScripts(script, pending))
            return

        _LOGGER.debug("Continuing to wait for version string...")

    async def _update_or_proceed(self, did_finish_firmware_update: bool) -> None:
        versions = self._versions
        if not versions.firmware_matches:
            _LOGGER.info(
                "Firmware update needed. Current version: %s",
                versions.current_firmware_version or "unknown",
            )
            # Firmware takes 0-50% when an FPGA update will follow
            await self._transition(states.InitiatingFirmwareUpdate(rescale=not versions.fpga_matches))
            return

        if not versions.fpga_matches:
            _LOGGER.info(
                "FPGA update needed. Current version: %s",
                versions.current_fpga_version or "unknown",
            )
            max_payload = self._transport.max_payload
            if max_payload is None or max_payload <= self._config.minimum_payload:
                _LOGGER.warning("Unable to update FPGA. Payload size: %s", max_payload or "unknown")
            elif self._fpga_image_loader is None:
                _LOGGER.warning("Unable to update FPGA. No FPGA image configured")
            else:
                # FPGA takes 50-100% when firmware was updated this cycle
                await self._transition(
                    states.InitiatingFpgaUpdate(max_payload=max_payload, rescale=did_finish_firmware_update)
                )
                return

        await self._transition(states.AwaitingAppVersion())

    # Transitions

    async def _transition(self, new_state: states.SessionState) -> None:
        _LOGGER.debug("Transition %s -> %s", type(self._state).__name__, type(new_state).__name__)
        self._state = new_state
        self._generation += 1
        self._matcher = None
        self._end_matcher = None
        self._version_mismatch = False
        self._response = ""
        await self._enter(new_state)

    async def _enter(self, state: states.SessionState) -> None:
        if isinstance(state, states.Disconnected):
            self._connected = False
            self._scripts = None
            self._dispatcher.reset()
            self.assistant.correlator.clear()
            self._set_device_state(DeviceState.NOT_READY)

        elif isinstance(state, states.EnteringRemoteShell):
            # Give the device time after power-up before its receive path
            # accepts data; the timer is ignored if the state moved on.
            loop = asyncio.get_running_loop()
            loop.call_later(
                self._config.shell_entry_delay,
                self.post,
                events.ShellEntryDue(self._generation),
            )

        elif isinstance(state, states.AwaitingRemoteShellConfirmation):
            self._versions = self._unknown_versions()
            self._matcher = StreamMatcher(RAW_REPL_BANNER)
            if not state.did_finish_firmware_update:
                self._set_device_state(DeviceState.NOT_READY)

        elif isinstance(state, states.AwaitingFirmwareVersion):
            await self._send_serial(build_firmware_version_query())

        elif isinstance(state, states.AwaitingFpgaVersion):
            await self._send_serial(build_fpga_version_query())

        elif isinstance(state, states.AwaitingAppVersion):
            self._scripts = self._script_loader()
            self._matcher = StreamMatcher(self._scripts.version)
            self._end_matcher = StreamMatcher(RESPONSE_END)
            await self._send_serial(build_app_version_query(self._scripts.version_variable))

        elif isinstance(state, states.DeployingScripts):
            self._matcher = StreamMatcher(COMMAND_OK)
            command = build_write_file_command(state.current.name, state.current.content)
            await self._send_serial(command)
            _LOGGER.info("Sent %s: %d bytes", state.current.name, len(command))

        elif isinstance(state, states.Running):
            self._scripts = None
            await self._send_serial(build_execute_signal())
            self._set_device_state(DeviceState.READY)

        elif isinstance(state, states.InitiatingFirmwareUpdate):
            self._set_device_state(DeviceState.UPDATING_FIRMWARE)
            await self._firmware.initiate()

        elif isinstance(state, states.PerformingFirmwareUpdate):
            self._set_device_state(DeviceState.UPDATING_FIRMWARE)
            self._firmware.start_flashing(
                state.target,
                on_progress=lambda percent: self.post(events.FlashProgress(percent)),
                on_abort=lambda reason: self.post(events.FlashAborted(reason)),
            )

        elif isinstance(state, states.InitiatingFpgaUpdate):
            self._set_device_state(DeviceState.UPDATING_FPGA)
            update = ImageUpdateState.for_payload(
                self._fpga_image_loader(),
                state.max_payload,
                rescale=state.rescale,
            )
            await self._transition(states.ErasingFpga(update))

        elif isinstance(state, states.ErasingFpga):
            self._matcher = StreamMatcher(COMMAND_OK)
            await self._fpga.erase(state.update)

        elif isinstance(state, states.TransferringFpgaChunks):
            self._matcher = StreamMatcher(COMMAND_OK)
            await self._fpga.send_chunk(state.update)

        elif isinstance(state, states.FinalizingFpga):
            await self._fpga.finalize()

    def _set_device_state(self, device_state: DeviceState) -> None:
        if device_state == self._device_state:
            return
        _LOGGER.info("Device state: %s", device_state.value)
        self._device_state = device_state
        if self._on_device_state:
            self._on_device_state(device_state)

    async def _send_serial(self, data: bytes) -> None:
        await self._transport.send(data, Channel.SERIAL)
