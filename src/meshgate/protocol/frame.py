"""
Envelope codec: JSON payload followed by one CRC8 byte.

╔════════════════════╦══════════════════════════════════════════════════════╗
║ Field              ║ Description                                          ║
╠════════════════════╬══════════════════════════════════════════════════════╣
║ Payload (N bytes)  ║ UTF-8 JSON object, N >= 1                            ║
╠════════════════════╬══════════════════════════════════════════════════════╣
║ Checksum (1 byte)  ║ CRC8 of the payload bytes only                       ║
╠════════════════════╬══════════════════════════════════════════════════════╣
║ Total Size         ║ <= max_frame_size (default 256)                      ║
╚════════════════════╩══════════════════════════════════════════════════════╝

One transport message carries exactly one envelope. There is no framing
byte, escaping or reassembly at this layer.
"""

from .constants import CHECKSUM_SIZE, DEFAULT_MAX_FRAME_SIZE, MIN_FRAME_SIZE
from .crc8 import crc8
from .errors import ChecksumMismatchError, FrameTooShortError, OversizeFrameError


class FrameCodec:
    """Packs and unpacks checksummed envelopes with a fixed size ceiling.

    Attributes:
        max_frame_size (int): Largest envelope (payload + checksum) accepted
            in either direction. Nothing is ever truncated to fit.
    """

    __slots__ = ("max_frame_size",)

    def __init__(self, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE):
        if max_frame_size < MIN_FRAME_SIZE:
            raise ValueError(
                f"max_frame_size must be at least {MIN_FRAME_SIZE}, got {max_frame_size}"
            )
        self.max_frame_size = max_frame_size

    @property
    def max_payload_size(self) -> int:
        return self.max_frame_size - CHECKSUM_SIZE

    def encode(self, payload: bytes) -> bytes:
        """Append the checksum byte to `payload`.

        Raises:
            OversizeFrameError: If the envelope would exceed max_frame_size.
        """
        payload = bytes(payload)
        size = len(payload) + CHECKSUM_SIZE
        if size > self.max_frame_size:
            raise OversizeFrameError(size, self.max_frame_size)
        return payload + bytes([crc8(payload)])

    def decode(self, frame: bytes) -> bytes:
        """Verify the trailing checksum and return the payload without it.

        Raises:
            FrameTooShortError: If the frame has fewer than 2 bytes.
            OversizeFrameError: If the frame exceeds max_frame_size.
            ChecksumMismatchError: If the checksum byte does not match.
        """
        frame = bytes(frame)
        if len(frame) < MIN_FRAME_SIZE:
            raise FrameTooShortError(len(frame))
        if len(frame) > self.max_frame_size:
            raise OversizeFrameError(len(frame), self.max_frame_size)

        payload, received = frame[:-CHECKSUM_SIZE], frame[-1]
        expected = crc8(payload)
        if received != expected:
            raise ChecksumMismatchError(expected, received)
        return payload

    def __repr__(self) -> str:
        return f"FrameCodec(max_frame_size={self.max_frame_size})"


_DEFAULT_CODEC = FrameCodec()


def encode_frame(payload: bytes) -> bytes:
    """Encode with the default 256-byte ceiling."""
    return _DEFAULT_CODEC.encode(payload)


def decode_frame(frame: bytes) -> bytes:
    """Decode with the default 256-byte ceiling."""
    return _DEFAULT_CODEC.decode(frame)
