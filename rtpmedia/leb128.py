"""LEB128 variable-length integers as used in AV1 OBUs."""

from __future__ import annotations

from .errors import LEB128ReadError

_SEVEN_LSB = 0x7F
_MSB = 0x80
_MASK64 = (1 << 64) - 1


def encode_leb128(value: int) -> int:
    """Encode an integer as LEB128, returning the bytes packed big-endian in an int."""
    out = 0
    while True:
        out |= value & _SEVEN_LSB
        value >>= 7
        if value == 0:
            return out
        out |= _MSB
        out <<= 8


def decode_leb128(value: int) -> int:
    """Decode LEB128 bytes packed big-endian in an int."""
    out = 0
    while True:
        out |= value & _SEVEN_LSB
        value >>= 8
        if value == 0:
            return out
        out <<= 7


def read_leb128(data: bytes) -> tuple[int, int]:
    """Read a LEB128 value from the start of data.

    Returns the decoded value and the number of bytes read.
    """
    encoded = 0
    for count, byte in enumerate(data, start=1):
        encoded |= byte
        if byte & _MSB == 0:
            return decode_leb128(encoded), count
        encoded = (encoded << 8) & _MASK64
    raise LEB128ReadError()


def write_leb128(value: int) -> bytes:
    """Encode an integer as LEB128 bytes."""
    out = bytearray()
    while True:
        byte = value & _SEVEN_LSB
        value >>= 7
        if value == 0:
            out.append(byte)
            return bytes(out)
        out.append(byte | _MSB)