import pytest

from rtpmedia.errors import LEB128ReadError
from rtpmedia.leb128 import decode_leb128, encode_leb128, read_leb128, write_leb128


@pytest.mark.parametrize(
    "value, encoded",
    [(0, 0), (5, 5), (999999, 0xBF843D)],
)
def test_encode_decode(value, encoded):
    assert encode_leb128(value) == encoded
    assert decode_leb128(encoded) == value


def test_read_empty_fails():
    with pytest.raises(LEB128ReadError):
        read_leb128(b"")


def test_read_all_msb_set_fails():
    with pytest.raises(LEB128ReadError):
        read_leb128(b"\xff")


@pytest.mark.parametrize(
    "value, hex_string",
    [
        (150, "9601"),
        (240, "f001"),
        (400, "9003"),
        (720, "d005"),
        (1200, "b009"),
        (999999, "bf843d"),
        (0, "00"),
        (0xFFFFFFFF, "ffffffff0f"),
    ],
)
def test_write(value, hex_string):
    assert write_leb128(value).hex() == hex_string


@pytest.mark.parametrize("value", [0, 5, 150, 999999, 0xFFFFFFFF])
def test_read_roundtrip(value):
    data = write_leb128(value) + b"\xaa\xbb"
    decoded, size = read_leb128(data)
    assert decoded == value
    assert size == len(data) - 2