import numpy as np
import pytest

from noa.config import REQUIRED_FIRMWARE_VERSION, REQUIRED_FPGA_VERSION, SessionConfig
from noa.exceptions import DataIntegrityError
from noa.models import AudioClip, VersionInfo


class TestAudioClip:
    """Test PCM decoding of microphone captures."""

    def test_from_pcm16(self):
        clip = AudioClip.from_pcm16(b"\x01\x00\xff\xff\x00\x80")
        assert clip.samples.dtype == np.int16
        assert clip.samples.tolist() == [1, -1, -32768]
        assert clip.sample_rate == 8000

    def test_duration(self):
        clip = AudioClip.from_pcm16(b"\x00\x00" * 4000)
        assert clip.duration == pytest.approx(0.5)

    def test_to_bytes(self):
        data = b"\x01\x00\xff\x7f"
        assert AudioClip.from_pcm16(data).to_bytes() == data

    def test_odd_length_rejected(self):
        with pytest.raises(DataIntegrityError, match="multiple of two"):
            AudioClip.from_pcm16(b"\x01\x00\x02")

    def test_empty(self):
        assert AudioClip.from_pcm16(b"").duration == 0


class TestVersionInfo:
    """Test version comparison."""

    def test_matches(self):
        info = VersionInfo("v1", "v2", current_firmware_version="v1", current_fpga_version="v2")
        assert info.firmware_matches
        assert info.fpga_matches

    def test_unknown_never_matches(self):
        info = VersionInfo("v1", "v2")
        assert not info.firmware_matches
        assert not info.fpga_matches

    def test_exact_comparison(self):
        info = VersionInfo("v23.248.0754", "v2", current_firmware_version="v23.248.0755")
        assert not info.firmware_matches


class TestSessionConfig:
    """Test session configuration validation."""

    def test_defaults(self):
        config = SessionConfig()
        assert config.required_firmware_version == REQUIRED_FIRMWARE_VERSION
        assert config.required_fpga_version == REQUIRED_FPGA_VERSION
        assert config.script_names == ("states", "graphics", "audio", "photo", "main")
        assert config.entry_point == "main.py"
        assert config.minimum_payload == 100

    def test_empty_script_names(self):
        with pytest.raises(ValueError):
            SessionConfig(script_names=())

    def test_negative_delay(self):
        with pytest.raises(ValueError):
            SessionConfig(shell_entry_delay=-1)

    def test_minimum_payload(self):
        with pytest.raises(ValueError):
            SessionConfig(minimum_payload=0)
