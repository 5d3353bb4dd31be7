"""Remote shell (raw REPL) commands for Monocle devices."""

from __future__ import annotations

from enum import IntEnum


class ControlCode(IntEnum):
    """Control bytes understood by the device's MicroPython shell."""

    ENTER_RAW_REPL = 0x01  # ^A
    INTERRUPT = 0x03       # ^C
    EOT = 0x04             # ^D, executes the pending command / soft-starts main.py


# GATT layout. Directionality is from the device's perspective: the host
# transmits on the RX characteristics and receives notifications on TX.
SERIAL_SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
SERIAL_TX_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
SERIAL_RX_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
DATA_SERVICE_UUID = "e5700001-7bac-429a-b4ce-57ff900f479d"
DATA_TX_UUID = "e5700003-7bac-429a-b4ce-57ff900f479d"
DATA_RX_UUID = "e5700002-7bac-429a-b4ce-57ff900f479d"

DEVICE_NAME = "monocle"
BOOTLOADER_NAME = "DfuTarg"

# Device markers
EOT = chr(ControlCode.EOT)
RAW_REPL_BANNER = "raw REPL; CTRL-B to exit\r\n>"
COMMAND_OK = "OK" + EOT + EOT + ">"
RESPONSE_END = EOT + ">"
ERROR_MARKER = "Error"

# Fixed-length wrapper around each FPGA image chunk, including the trailing EOT.
FPGA_CHUNK_PREFIX = "update.Fpga.write(ubinascii.a2b_base64(b'"
FPGA_CHUNK_SUFFIX = "'))"
FPGA_CHUNK_OVERHEAD = len(FPGA_CHUNK_PREFIX) + len(FPGA_CHUNK_SUFFIX) + 1  # 45


def build_raw_repl_sequence() -> bytes:
    """Build the shell interrupt sequence.

    Returns:
        ^C (kill running program), ^C (again to be sure), ^A (raw REPL mode)
    """
    return bytes([ControlCode.INTERRUPT, ControlCode.INTERRUPT, ControlCode.ENTER_RAW_REPL])


def build_execute_signal() -> bytes:
    """Build the lone ^D that starts main.py from the raw REPL."""
    return bytes([ControlCode.EOT])


def build_python_command(statement: str) -> bytes:
    """Encode a single-line statement followed by ^D to execute it.

    Args:
        statement: Python source; must not contain raw line breaks

    Returns:
        UTF-8 statement bytes terminated by EOT
    """
    return statement.encode("utf-8") + bytes([ControlCode.EOT])


def build_firmware_version_query() -> bytes:
    return build_python_command("import device;print(device.VERSION);del(device)")


def build_fpga_version_query() -> bytes:
    # fpga.read() rather than fpga.version() keeps older firmware working
    return build_python_command("import fpga;print(fpga.read(2,12));del(fpga)")


def build_app_version_query(variable: str) -> bytes:
    return build_python_command(f"print({variable})")


def build_begin_firmware_update_command() -> bytes:
    """Build the command that reboots the device into its bootloader."""
    return build_python_command("import update;update.micropython()")


def build_fpga_erase_command() -> bytes:
    """Build the command that stops the FPGA and erases its image."""
    return build_python_command(
        "import ubinascii,update,device,bluetooth,fpga;fpga.run(False);update.Fpga.erase()"
    )


def build_fpga_chunk_command(chunk: str) -> bytes:
    """Build a base64 chunk write.

    Args:
        chunk: Base64 text; length should be a multiple of 4

    Returns:
        Command bytes of exactly len(chunk) + FPGA_CHUNK_OVERHEAD
    """
    return build_python_command(FPGA_CHUNK_PREFIX + chunk + FPGA_CHUNK_SUFFIX)


def build_fpga_finalize_command() -> bytes:
    """Build the command that commits the FPGA image and resets the device."""
    return build_python_command("update.Fpga.write(b'done');device.reset()")


def build_write_file_command(filename: str, content: str) -> bytes:
    """Build a single-line file write.

    Args:
        filename: Destination file on the device
        content: File content with line breaks already escaped

    Returns:
        Command bytes terminated by EOT
    """
    if "\n" in content:
        raise ValueError(f"Content of {filename} contains unescaped line breaks")
    return build_python_command(f"f=open('{filename}','w');f.write('''{content}''');f.close()")
