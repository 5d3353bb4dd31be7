"""Monocle session package.

  Connects to a Monocle, keeps its firmware, FPGA image and app scripts up
  to date, and relays voice and photo queries to AI services.
  """

from .config import SessionConfig
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    DataIntegrityError,
    InvalidResponseError,
    NoaError,
    ProtocolError,
    ServiceError,
    TransportError,
)
from .models import AudioClip, DeviceState, Message, Mode, Participant, VersionInfo
from .models.events import (
    BootloaderConnected,
    Connected,
    Disconnected,
    FlashAborted,
    FlashProgress,
    FrameReceived,
    TextReceived,
)
from .protocol import FrameTag, StreamMatcher
from .runtime import CommandDispatcher, QueryCorrelator
from .scripts import ScriptDeploymentQueue, ScriptFile
from .services import Channel
from .session import SessionStateMachine
from .transport import MonocleConnection
from .updates import FirmwareUpdateCoordinator, FpgaUpdateCoordinator, ImageUpdateState

__version__ = "0.1.0"

__all__ = [
    # Main API
    "SessionStateMachine",
    "SessionConfig",
    "MonocleConnection",
    "Channel",
    # Events
    "Connected",
    "Disconnected",
    "BootloaderConnected",
    "TextReceived",
    "FrameReceived",
    "FlashProgress",
    "FlashAborted",
    # Exceptions
    "NoaError",
    "TransportError",
    "BLEConnectionError",
    "BLETimeoutError",
    "ProtocolError",
    "InvalidResponseError",
    "DataIntegrityError",
    "ServiceError",
    # Models
    "AudioClip",
    "DeviceState",
    "Message",
    "Mode",
    "Participant",
    "VersionInfo",
    # Components
    "StreamMatcher",
    "ScriptDeploymentQueue",
    "ScriptFile",
    "ImageUpdateState",
    "FirmwareUpdateCoordinator",
    "FpgaUpdateCoordinator",
    "CommandDispatcher",
    "QueryCorrelator",
    "FrameTag",
]
