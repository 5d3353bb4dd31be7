"""Session states.

The session is always exactly one of the variants below. Each carries only
the data its phase needs and is replaced, never mutated, on every transition.

    Disconnected
      -> EnteringRemoteShell -> AwaitingRemoteShellConfirmation
      -> AwaitingFirmwareVersion -> AwaitingFpgaVersion
      -> AwaitingAppVersion | InitiatingFirmwareUpdate | InitiatingFpgaUpdate
      -> DeployingScripts -> Running

    InitiatingFirmwareUpdate -> PerformingFirmwareUpdate
      -> (device returns) EnteringRemoteShell(did_finish_firmware_update=True)
    InitiatingFpgaUpdate -> ErasingFpga -> TransferringFpgaChunks
      -> FinalizingFpga -> (device reboots) EnteringRemoteShell
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..scripts import ScriptFile
    from ..updates.fpga import ImageUpdateState


class DeviceState(Enum):
    """Coarse device status published to the UI."""
    NOT_READY = "not_ready"                  # connection not yet firmly established
    UPDATING_FIRMWARE = "updating_firmware"
    UPDATING_FPGA = "updating_fpga"
    READY = "ready"                          # all updates done, app running


@dataclass(frozen=True)
class Disconnected:
    pass


@dataclass(frozen=True)
class EnteringRemoteShell:
    did_finish_firmware_update: bool = False


@dataclass(frozen=True)
class AwaitingRemoteShellConfirmation:
    did_finish_firmware_update: bool = False


@dataclass(frozen=True)
class AwaitingFirmwareVersion:
    did_finish_firmware_update: bool = False


@dataclass(frozen=True)
class AwaitingFpgaVersion:
    firmware_version: str | None
    did_finish_firmware_update: bool = False


@dataclass(frozen=True)
class AwaitingAppVersion:
    pass


@dataclass(frozen=True)
class DeployingScripts:
    """Scripts being written one at a time.

    Attributes:
        current: File whose write is awaiting confirmation
        pending: Files still to send, front first
    """
    current: ScriptFile
    pending: tuple[ScriptFile, ...] = ()


@dataclass(frozen=True)
class Running:
    pass


@dataclass(frozen=True)
class InitiatingFirmwareUpdate:
    rescale: bool


@dataclass(frozen=True)
class PerformingFirmwareUpdate:
    target: Any
    rescale: bool


@dataclass(frozen=True)
class InitiatingFpgaUpdate:
    max_payload: int
    rescale: bool


@dataclass(frozen=True)
class ErasingFpga:
    update: ImageUpdateState


@dataclass(frozen=True)
class TransferringFpgaChunks:
    update: ImageUpdateState


@dataclass(frozen=True)
class FinalizingFpga:
    pass


SessionState = (
    Disconnected
    | EnteringRemoteShell
    | AwaitingRemoteShellConfirmation
    | AwaitingFirmwareVersion
    | AwaitingFpgaVersion
    | AwaitingAppVersion
    | DeployingScripts
    | Running
    | InitiatingFirmwareUpdate
    | PerformingFirmwareUpdate
    | InitiatingFpgaUpdate
    | ErasingFpga
    | TransferringFpgaChunks
    | FinalizingFpga
)

FIRMWARE_UPDATE_STATES = (InitiatingFirmwareUpdate, PerformingFirmwareUpdate)
