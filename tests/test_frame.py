import pytest

from meshgate.protocol import (
    ChecksumMismatchError,
    FrameCodec,
    FrameError,
    FrameTooShortError,
    OversizeFrameError,
    crc8,
    decode_frame,
    encode_frame,
)


class TestCrc8:
    def test_check_value(self):
        """Test the standard Dallas/Maxim check value."""
        assert crc8(b"123456789") == 0xA1

    def test_known_vectors(self):
        assert crc8(b"") == 0x00
        assert crc8(b"\x00") == 0x00
        assert crc8(b"\x01") == 0x5E

    def test_accepts_bytearray_and_memoryview(self):
        data = b"hello mesh"
        assert crc8(bytearray(data)) == crc8(data)
        assert crc8(memoryview(data)) == crc8(data)

    def test_result_is_a_byte(self):
        for i in range(256):
            assert 0 <= crc8(bytes([i, 255 - i])) <= 0xFF

    def test_appending_crc_gives_zero_residue(self):
        """Test that a payload followed by its own CRC checks to zero."""
        data = b'{"relay":1,"state":1}'
        assert crc8(data + bytes([crc8(data)])) == 0


class TestFrameCodec:
    def setup_method(self):
        self.codec = FrameCodec()

    def test_defaults(self):
        assert self.codec.max_frame_size == 256
        assert self.codec.max_payload_size == 255

    def test_rejects_tiny_limit(self):
        with pytest.raises(ValueError):
            FrameCodec(1)

    def test_encode_appends_checksum(self):
        frame = self.codec.encode(b"hi")
        assert frame[:-1] == b"hi"
        assert frame[-1] == crc8(b"hi")
        assert len(frame) == 3

    def test_round_trip(self):
        payload = b'{"status":0}'
        assert self.codec.decode(self.codec.encode(payload)) == payload

    def test_module_helpers_use_default_limit(self):
        payload = b"x" * 255
        assert decode_frame(encode_frame(payload)) == payload
        with pytest.raises(OversizeFrameError):
            encode_frame(b"x" * 256)

    def test_decode_length_one_is_too_short(self):
        with pytest.raises(FrameTooShortError) as exc_info:
            self.codec.decode(b"\x00")
        assert exc_info.value.length == 1

    def test_decode_empty_is_too_short(self):
        with pytest.raises(FrameTooShortError):
            self.codec.decode(b"")

    def test_decode_corrupted_checksum(self):
        frame = bytearray(self.codec.encode(b"abc"))
        frame[-1] ^= 0xFF
        with pytest.raises(ChecksumMismatchError) as exc_info:
            self.codec.decode(bytes(frame))
        assert exc_info.value.expected == crc8(b"abc")
        assert exc_info.value.received == frame[-1]

    def test_single_bit_flips_are_detected(self):
        """Test that every single-bit flip in frames up to 64-byte payloads is caught."""
        for length in range(1, 65):
            payload = bytes((i * 37 + length) & 0xFF for i in range(length))
            frame = self.codec.encode(payload)
            for bit in range(len(frame) * 8):
                corrupted = bytearray(frame)
                corrupted[bit // 8] ^= 1 << (bit % 8)
                with pytest.raises(ChecksumMismatchError):
                    self.codec.decode(bytes(corrupted))

    def test_encode_oversize_is_refused(self):
        codec = FrameCodec(max_frame_size=8)
        assert len(codec.encode(b"1234567")) == 8
        with pytest.raises(OversizeFrameError) as exc_info:
            codec.encode(b"12345678")
        assert exc_info.value.size == 9
        assert exc_info.value.limit == 8

    def test_decode_oversize_is_refused(self):
        big = FrameCodec(max_frame_size=512).encode(b"y" * 300)
        with pytest.raises(OversizeFrameError):
            self.codec.decode(big)

    def test_errors_share_a_base(self):
        assert issubclass(FrameTooShortError, FrameError)
        assert issubclass(ChecksumMismatchError, FrameError)
        assert issubclass(OversizeFrameError, FrameError)
