"""Device text response parsing."""

from __future__ import annotations

from .commands import ERROR_MARKER, RESPONSE_END


def is_response_complete(response: str) -> bool:
    """Check whether an accumulated shell response has finished.

    A successful command prints ``OK<output>\\r\\n^D^D>`` while a failing one
    prints a single ^D before its traceback, so ``^D>`` covers both.
    """
    return RESPONSE_END in response


def contains_error(response: str) -> bool:
    """Check for a Python exception anywhere in a response."""
    return ERROR_MARKER in response


def _first_line_payload(response: str) -> str | None:
    if contains_error(response):
        return None
    first_line = response.splitlines()[0] if response else ""
    if len(first_line) < 3 or not first_line.startswith("OK"):
        return None
    return first_line


def parse_firmware_version(response: str) -> str | None:
    """Parse a complete firmware version response.

    Sample:
        ``OKv23.181.0720\\r\\n\\x04\\x04>``

    Args:
        response: Accumulated response text

    Returns:
        Version string (e.g. "v23.181.0720"), or None if it could not be read
    """
    line = _first_line_payload(response)
    if line is None:
        return None
    return line[2:]


def parse_fpga_version(response: str) -> str | None:
    """Parse a complete FPGA version response.

    The FPGA register read prints a bytes literal:
        ``OKb'v23.179.1006'\\r\\n\\x04\\x04>``

    Args:
        response: Accumulated response text

    Returns:
        Version string with the b'' quoting stripped, or None
    """
    line = _first_line_payload(response)
    if line is None:
        return None
    return line.replace("b'", "").replace("'", "")[2:]
