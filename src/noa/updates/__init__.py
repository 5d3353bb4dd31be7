"""Firmware and FPGA update coordinators."""

from .firmware import FirmwareUpdateCoordinator
from .fpga import FpgaUpdateCoordinator, ImageUpdateState, compute_chunk_size, load_fpga_image
from .progress import ProgressReporter, rescale_first_half, rescale_second_half

__all__ = [
    "FirmwareUpdateCoordinator",
    "FpgaUpdateCoordinator",
    "ImageUpdateState",
    "ProgressReporter",
    "compute_chunk_size",
    "load_fpga_image",
    "rescale_first_half",
    "rescale_second_half",
]
