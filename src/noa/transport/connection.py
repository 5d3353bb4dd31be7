"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError
from ..models import events
from ..protocol import (
    BOOTLOADER_NAME,
    DATA_RX_UUID,
    DATA_TX_UUID,
    DEVICE_NAME,
    SERIAL_RX_UUID,
    SERIAL_TX_UUID,
)
from ..services import Channel

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[events.SessionEvent], None]


class BootloaderScanner:
    """Looks for the device's bootloader identity while enabled.

    Posts one BootloaderConnected per enable cycle; disabling and enabling
    again starts a fresh scan.
    """

    def __init__(self, on_event: EventCallback, timeout: float = 10.0):
        self._on_event = on_event
        self.timeout = timeout
        self._task: asyncio.Task[None] | None = None

    @property
    def enabled(self) -> bool:
        return self._task is not None

    def set_enabled(self, enabled: bool) -> None:
        if enabled and self._task is None:
            _LOGGER.debug("Scanning for %s", BOOTLOADER_NAME)
            self._task = asyncio.create_task(self._scan())
        elif not enabled and self._task is not None:
            _LOGGER.debug("Stopped scanning for %s", BOOTLOADER_NAME)
            self._task.cancel()
            self._task = None

    async def _scan(self) -> None:
        while True:
            device = await BleakScanner.find_device_by_name(BOOTLOADER_NAME, timeout=self.timeout)
            if device is not None:
                _LOGGER.debug("Found bootloader %s", device.address)
                self._on_event(events.BootloaderConnected(device_id=device.address, target=device))
                return


class MonocleConnection:
    """Manages the BLE connection to a Monocle.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Serial (shell) and data notifications delivered as session events
    - Serialized writes, split to the negotiated payload size
    """

    def __init__(
            self,
            mac_address: str,
            on_event: EventCallback,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            on_event: Receives Connected, Disconnected, TextReceived,
                FrameReceived and BootloaderConnected events
            ble_device: Optional BLEDevice from a previous scan
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._on_event = on_event
        self._client: BleakClient | None = None
        self._write_lock = asyncio.Lock()
        self._bootloader_scanner = BootloaderScanner(on_event, timeout=timeout)

    async def __aenter__(self) -> MonocleConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or DEVICE_NAME,
                disconnected_callback=self._disconnected_callback,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.debug("Connected to %s", self.mac_address)

            await self._setup_notifications()

        except BLEConnectionError:
            raise
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

        self._on_event(events.Connected(self.mac_address))

    async def disconnect(self) -> None:
        """Disconnect from device."""
        self._bootloader_scanner.set_enabled(False)
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None

    async def _setup_notifications(self) -> None:
        """Subscribe to the serial and data TX characteristics.

        Raises:
            BLEConnectionError: If a characteristic is missing
        """
        for uuid, callback in (
                (SERIAL_TX_UUID, self._serial_callback),
                (DATA_TX_UUID, self._data_callback),
        ):
            await self._client.start_notify(self._characteristic(uuid), callback)

        _LOGGER.debug("Notifications started")

    def _characteristic(self, uuid: str) -> BleakGATTCharacteristic:
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")
        characteristic = self._client.services.get_characteristic(uuid)
        if characteristic is None:
            raise BLEConnectionError(f"Characteristic {uuid} not found")
        return characteristic

    def _disconnected_callback(self, client: BleakClient) -> None:
        _LOGGER.debug("Disconnected from %s", self.mac_address)
        self._on_event(events.Disconnected(self.mac_address))

    def _serial_callback(self, sender, data: bytearray) -> None:
        self._on_event(events.TextReceived(bytes(data).decode("utf-8", errors="replace")))

    def _data_callback(self, sender, data: bytearray) -> None:
        self._on_event(events.FrameReceived(bytes(data)))

    @property
    def max_payload(self) -> int | None:
        """Largest write without response, or None when not connected."""
        if not self.is_connected:
            return None
        characteristic = self._client.services.get_characteristic(SERIAL_RX_UUID)
        if characteristic is None:
            return None
        return characteristic.max_write_without_response_size

    async def send(self, data: bytes, channel: Channel) -> None:
        """Write to a channel, split into payload-sized writes.

        Args:
            data: Bytes to send
            channel: Serial (shell) or data channel

        Raises:
            BLEConnectionError: If not connected or write fails
        """
        uuid = SERIAL_RX_UUID if channel is Channel.SERIAL else DATA_RX_UUID
        async with self._write_lock:
            characteristic = self._characteristic(uuid)
            size = characteristic.max_write_without_response_size
            try:
                for start in range(0, len(data), size):
                    await self._client.write_gatt_char(
                        characteristic,
                        data[start:start + size],
                        response=False,
                    )
            except Exception as e:
                raise BLEConnectionError(f"Write failed: {e}") from e

    def set_bootloader_scanning(self, enabled: bool) -> None:
        self._bootloader_scanner.set_enabled(enabled)

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
