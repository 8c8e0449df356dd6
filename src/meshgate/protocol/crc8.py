"""
CRC-8 used as the envelope integrity check.

Dallas/Maxim variant: reflected polynomial 0x8C, initial value 0x00, no
final XOR. Every endpoint must produce the same byte for the same payload,
so this is the single implementation used by sensor, actuator and hub.
"""

from .constants import CRC8_INIT, CRC8_POLY


def crc8(data: bytes, init: int = CRC8_INIT) -> int:
    """Compute CRC8 over bytes-like `data`, bit-serial and LSB-first.

    Returns an int 0..255. `crc8(b"123456789") == 0xA1`.
    """
    crc = init & 0xFF
    for byte in memoryview(bytes(data)):
        extract = byte
        for _ in range(8):
            feedback = (crc ^ extract) & 0x01
            crc >>= 1
            if feedback:
                crc ^= CRC8_POLY
            extract >>= 1
    return crc
