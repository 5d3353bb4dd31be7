import pytest

from noa.exceptions import InvalidResponseError
from noa.protocol.frames import FrameTag, build_frame, build_text_frames, parse_frame


class TestParseFrame:
    """Test data channel frame parsing."""

    def test_known_tag(self):
        tag, payload = parse_frame(b"dat:\x01\x02")
        assert tag is FrameTag.AUDIO_DATA
        assert payload == b"\x01\x02"

    def test_empty_payload(self):
        tag, payload = parse_frame(b"aen:")
        assert tag is FrameTag.AUDIO_END
        assert payload == b""

    def test_unknown_tag(self):
        tag, payload = parse_frame(b"zzz:abc")
        assert tag is None
        assert payload == b"abc"

    def test_too_short(self):
        with pytest.raises(InvalidResponseError, match="too short"):
            parse_frame(b"da")

    def test_bytearray_input(self):
        tag, payload = parse_frame(bytearray(b"pon:ABC"))
        assert tag is FrameTag.QUERY_ACK
        assert payload == b"ABC"


class TestBuildFrames:
    """Test host-to-device frame building."""

    def test_build_frame(self):
        assert build_frame(FrameTag.QUERY_ID, b"1234") == b"pin:1234"
        assert build_frame(FrameTag.IMAGE_ACK) == b"ick:"

    def test_text_fits_one_frame(self):
        assert build_text_frames(FrameTag.RESPONSE, "hello", 20) == [b"res:hello"]

    def test_text_split(self):
        frames = build_text_frames(FrameTag.RESPONSE, "abcdefghij", 8)
        assert frames == [b"res:abcd", b"res:efgh", b"res:ij"]
        assert all(len(frame) <= 8 for frame in frames)

    def test_multibyte_characters_not_cut(self):
        """Every frame payload decodes on its own."""
        frames = build_text_frames(FrameTag.ERROR, "ééé", 7)
        assert all(len(frame) <= 7 for frame in frames)
        assert "".join(frame[4:].decode("utf-8") for frame in frames) == "ééé"

    def test_empty_text(self):
        assert build_text_frames(FrameTag.RESPONSE, "", 20) == []

    def test_unusable_payload(self):
        with pytest.raises(ValueError):
            build_text_frames(FrameTag.RESPONSE, "hi", 4)
