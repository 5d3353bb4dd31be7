"""Firmware and FPGA version bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VersionInfo:
    """Versions reported by the device against the versions this host ships.

    Versions are opaque strings compared for exact equality; an unknown
    (None) version never matches.
    """

    required_firmware_version: str
    required_fpga_version: str
    current_firmware_version: str | None = None
    current_fpga_version: str | None = None

    @property
    def firmware_matches(self) -> bool:
        return self.current_firmware_version == self.required_firmware_version

    @property
    def fpga_matches(self) -> bool:
        return self.current_fpga_version == self.required_fpga_version
