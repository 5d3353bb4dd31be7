"""Session configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .scripts import DEFAULT_ENTRY_POINT, DEFAULT_SCRIPT_NAMES, DEFAULT_VERSION_VARIABLE

REQUIRED_FIRMWARE_VERSION = "v23.248.0754"
REQUIRED_FPGA_VERSION = "v23.230.0808"


@dataclass(frozen=True)
class SessionConfig:
    """Settings for a device session.

    Attributes:
        required_firmware_version: Firmware version this host ships
        required_fpga_version: FPGA image version this host ships
        script_directory: Directory holding the device scripts
        script_names: Logical script names, in deployment order
        entry_point: Script that receives the version assignment
        version_variable: Device variable holding the deployed version
        fpga_image_path: Binary FPGA image; without it FPGA updates are skipped
        shell_entry_delay: Seconds to wait after connecting before
            interrupting the shell (the device's receive path needs time)
        chunk_pacing_delay: Pause (seconds) per percentage point of FPGA progress
        minimum_payload: FPGA updates need a transport payload larger than this
    """

    required_firmware_version: str = REQUIRED_FIRMWARE_VERSION
    required_fpga_version: str = REQUIRED_FPGA_VERSION
    script_directory: Path | None = None
    script_names: tuple[str, ...] = DEFAULT_SCRIPT_NAMES
    entry_point: str = DEFAULT_ENTRY_POINT
    version_variable: str = DEFAULT_VERSION_VARIABLE
    fpga_image_path: Path | None = None
    shell_entry_delay: float = 0.1
    chunk_pacing_delay: float = 0.02
    minimum_payload: int = 100

    def __post_init__(self) -> None:
        if not self.script_names:
            raise ValueError("script_names must not be empty")
        if self.shell_entry_delay < 0 or self.chunk_pacing_delay < 0:
            raise ValueError("Delays must not be negative")
        if self.minimum_payload <= 0:
            raise ValueError(f"minimum_payload must be positive, got {self.minimum_payload}")
