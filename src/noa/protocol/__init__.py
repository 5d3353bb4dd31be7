"""Monocle device protocol implementation."""

from .commands import (
    BOOTLOADER_NAME,
    COMMAND_OK,
    DATA_RX_UUID,
    DATA_SERVICE_UUID,
    DATA_TX_UUID,
    DEVICE_NAME,
    EOT,
    ERROR_MARKER,
    FPGA_CHUNK_OVERHEAD,
    RAW_REPL_BANNER,
    RESPONSE_END,
    SERIAL_RX_UUID,
    SERIAL_SERVICE_UUID,
    SERIAL_TX_UUID,
    ControlCode,
    build_app_version_query,
    build_begin_firmware_update_command,
    build_execute_signal,
    build_firmware_version_query,
    build_fpga_chunk_command,
    build_fpga_erase_command,
    build_fpga_finalize_command,
    build_fpga_version_query,
    build_python_command,
    build_raw_repl_sequence,
    build_write_file_command,
)
from .frames import FrameTag, build_frame, build_text_frames, parse_frame
from .matcher import StreamMatcher
from .responses import (
    contains_error,
    is_response_complete,
    parse_firmware_version,
    parse_fpga_version,
)

__all__ = [
    "ControlCode",
    "SERIAL_SERVICE_UUID",
    "SERIAL_TX_UUID",
    "SERIAL_RX_UUID",
    "DATA_SERVICE_UUID",
    "DATA_TX_UUID",
    "DATA_RX_UUID",
    "DEVICE_NAME",
    "BOOTLOADER_NAME",
    "EOT",
    "RAW_REPL_BANNER",
    "RESPONSE_END",
    "COMMAND_OK",
    "ERROR_MARKER",
    "FPGA_CHUNK_OVERHEAD",
    "build_raw_repl_sequence",
    "build_execute_signal",
    "build_python_command",
    "build_firmware_version_query",
    "build_fpga_version_query",
    "build_app_version_query",
    "build_begin_firmware_update_command",
    "build_fpga_erase_command",
    "build_fpga_chunk_command",
    "build_fpga_finalize_command",
    "build_write_file_command",
    "FrameTag",
    "parse_frame",
    "build_frame",
    "build_text_frames",
    "StreamMatcher",
    "is_response_complete",
    "contains_error",
    "parse_firmware_version",
    "parse_fpga_version",
]
