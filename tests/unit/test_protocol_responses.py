from noa.protocol.responses import (
    contains_error,
    is_response_complete,
    parse_firmware_version,
    parse_fpga_version,
)


class TestResponseCompletion:
    """Test detection of finished shell responses."""

    def test_complete_success(self):
        assert is_response_complete("OKv23.248.0754\r\n\x04\x04>")

    def test_complete_failure(self):
        """A failing command prints one ^D before its traceback."""
        assert is_response_complete("OK\x04Traceback...\r\nNameError: x\r\n\x04>")

    def test_incomplete(self):
        assert not is_response_complete("OKv23.248")
        assert not is_response_complete("")

    def test_contains_error(self):
        assert contains_error("OK\x04Traceback\r\nAttributeError: no\r\n\x04>")
        assert not contains_error("OK\x04\x04>")


class TestFirmwareVersion:
    """Test firmware version parsing."""

    def test_parse(self):
        assert parse_firmware_version("OKv23.181.0720\r\n\x04\x04>") == "v23.181.0720"

    def test_error_response(self):
        """A traceback means the version is unknown."""
        assert parse_firmware_version("OK\x04Traceback\r\nImportError: device\r\n\x04>") is None

    def test_missing_ok_prefix(self):
        assert parse_firmware_version("v23.181.0720\r\n\x04>") is None

    def test_too_short(self):
        assert parse_firmware_version("OK\r\n\x04\x04>") is None


class TestFpgaVersion:
    """Test FPGA version parsing."""

    def test_parse_bytes_literal(self):
        """The register read prints a bytes literal."""
        assert parse_fpga_version("OKb'v23.179.1006'\r\n\x04\x04>") == "v23.179.1006"

    def test_error_response(self):
        assert parse_fpga_version("OK\x04Traceback\r\nOSError: Error\r\n\x04>") is None
