"""Test MonocleConnection against an injected fake BLE client."""

from __future__ import annotations

import asyncio

import pytest
from bleak import BleakScanner

from noa.exceptions import BLEConnectionError
from noa.models.events import BootloaderConnected, Disconnected, FrameReceived, TextReceived
from noa.protocol import DATA_RX_UUID, DATA_TX_UUID, SERIAL_RX_UUID, SERIAL_TX_UUID
from noa.services import Channel
from noa.transport import BootloaderScanner, MonocleConnection


class _FakeCharacteristic:
    def __init__(self, uuid: str, size: int):
        self.uuid = uuid
        self.max_write_without_response_size = size


class _FakeServices:
    def __init__(self, size: int):
        self._characteristics = {
            uuid: _FakeCharacteristic(uuid, size)
            for uuid in (SERIAL_RX_UUID, SERIAL_TX_UUID, DATA_RX_UUID, DATA_TX_UUID)
        }

    def get_characteristic(self, uuid: str):
        return self._characteristics.get(uuid)


class _FakeClient:
    def __init__(self, size: int = 20, fail: bool = False):
        self.is_connected = True
        self.services = _FakeServices(size)
        self.fail = fail
        self.writes: list[tuple[str, bytes, bool]] = []
        self.notifications: dict[str, object] = {}

    async def write_gatt_char(self, characteristic, data: bytes, response: bool) -> None:
        if self.fail:
            raise OSError("GATT write failed")
        self.writes.append((characteristic.uuid, data, response))

    async def start_notify(self, characteristic, callback) -> None:
        self.notifications[characteristic.uuid] = callback

    async def disconnect(self) -> None:
        self.is_connected = False


def _connection(client: _FakeClient | None = None):
    received = []
    connection = MonocleConnection(mac_address="AA:BB:CC:DD:EE:FF", on_event=received.append)
    connection._client = client  # Inject fake client
    return connection, received


@pytest.mark.asyncio
async def test_send_splits_to_payload_size() -> None:
    """Writes are split to the characteristic's write-without-response size."""
    client = _FakeClient(size=20)
    connection, _ = _connection(client)

    await connection.send(bytes(range(45)), Channel.SERIAL)

    assert [len(data) for _, data, _ in client.writes] == [20, 20, 5]
    assert b"".join(data for _, data, _ in client.writes) == bytes(range(45))
    assert all(uuid == SERIAL_RX_UUID and not response for uuid, _, response in client.writes)


@pytest.mark.asyncio
async def test_send_data_channel() -> None:
    client = _FakeClient()
    connection, _ = _connection(client)

    await connection.send(b"res:hi", Channel.DATA)

    assert client.writes == [(DATA_RX_UUID, b"res:hi", False)]


@pytest.mark.asyncio
async def test_concurrent_sends_do_not_interleave() -> None:
    client = _FakeClient(size=2)
    connection, _ = _connection(client)

    await asyncio.gather(
        connection.send(b"aaaaaa", Channel.SERIAL),
        connection.send(b"bbbbbb", Channel.SERIAL),
    )

    assert [data for _, data, _ in client.writes] == [b"aa"] * 3 + [b"bb"] * 3


@pytest.mark.asyncio
async def test_send_failure_raises() -> None:
    connection, _ = _connection(_FakeClient(fail=True))

    with pytest.raises(BLEConnectionError, match="Write failed"):
        await connection.send(b"\x04", Channel.SERIAL)


@pytest.mark.asyncio
async def test_send_when_not_connected() -> None:
    connection, _ = _connection()

    with pytest.raises(BLEConnectionError, match="Not connected"):
        await connection.send(b"\x04", Channel.SERIAL)


def test_max_payload() -> None:
    connection, _ = _connection(_FakeClient(size=182))
    assert connection.max_payload == 182
    assert _connection()[0].max_payload is None


@pytest.mark.asyncio
async def test_notifications_become_events() -> None:
    client = _FakeClient()
    connection, received = _connection(client)

    await connection._setup_notifications()
    client.notifications[SERIAL_TX_UUID](None, bytearray(b"OK\x04\x04>"))
    client.notifications[DATA_TX_UUID](None, bytearray(b"dat:\x01\x00"))

    assert received == [TextReceived("OK\x04\x04>"), FrameReceived(b"dat:\x01\x00")]


def test_invalid_utf8_replaced() -> None:
    connection, received = _connection(_FakeClient())
    connection._serial_callback(None, bytearray(b"OK\xff"))
    assert received == [TextReceived("OK�")]


def test_disconnected_callback() -> None:
    connection, received = _connection(_FakeClient())
    connection._disconnected_callback(None)
    assert received == [Disconnected("AA:BB:CC:DD:EE:FF")]


@pytest.mark.asyncio
async def test_disconnect() -> None:
    client = _FakeClient()
    connection, _ = _connection(client)

    await connection.disconnect()

    assert not client.is_connected
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_bootloader_scanner(monkeypatch) -> None:
    """The scanner posts one event when the bootloader shows up."""
    class _Device:
        address = "DF:U0:00:00:00:01"

    names = []

    async def find_device_by_name(name, timeout):
        names.append(name)
        return _Device() if len(names) > 1 else None

    monkeypatch.setattr(BleakScanner, "find_device_by_name", staticmethod(find_device_by_name))
    received = []
    scanner = BootloaderScanner(received.append, timeout=0.1)

    scanner.set_enabled(True)
    assert scanner.enabled
    for _ in range(5):
        await asyncio.sleep(0)

    assert names == ["DfuTarg", "DfuTarg"]
    assert len(received) == 1
    assert isinstance(received[0], BootloaderConnected)
    assert received[0].device_id == "DF:U0:00:00:00:01"

    scanner.set_enabled(False)
    assert not scanner.enabled
