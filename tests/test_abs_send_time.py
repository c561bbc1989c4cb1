from datetime import datetime, timedelta, timezone

import pytest

from rtpmedia.abs_send_time import (
    AbsSendTimeExtension,
    from_ntp_time,
    to_ntp_time,
)
from rtpmedia.errors import BufferTooSmallError

RESOLUTION_NS = 3800
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UTC_MINUS_5 = timezone(timedelta(hours=-5))


def _unix_ns(year, month, day, hour, minute, second, nanos):
    moment = datetime(year, month, day, hour, minute, second, tzinfo=UTC_MINUS_5)
    return (moment - EPOCH) // timedelta(seconds=1) * 1_000_000_000 + nanos


NTP_CASES = [
    (_unix_ns(1985, 6, 23, 4, 0, 0, 0), 0xA0C65B1000000000),
    (_unix_ns(1999, 12, 31, 23, 59, 59, 500000), 0xBC18084F0020C49B),
    (_unix_ns(2019, 3, 27, 13, 39, 30, 8675309), 0xE04641E202388B88),
]


@pytest.mark.parametrize("unix_ns, ntp", NTP_CASES)
def test_to_ntp_time(unix_ns, ntp):
    assert to_ntp_time(unix_ns) == ntp


@pytest.mark.parametrize("unix_ns, ntp", NTP_CASES)
def test_from_ntp_time(unix_ns, ntp):
    assert abs(from_ntp_time(ntp) - unix_ns) <= RESOLUTION_NS


@pytest.mark.parametrize("timestamp", [123456, 654321])
def test_roundtrip(timestamp):
    ext = AbsSendTimeExtension(timestamp=timestamp)
    data = ext.marshal()
    assert len(data) == 3
    assert AbsSendTimeExtension.unmarshal(data).timestamp == timestamp


def test_marshal_bytes():
    assert AbsSendTimeExtension(timestamp=0x123456).marshal() == b"\x12\x34\x56"


def test_unmarshal_too_small():
    with pytest.raises(BufferTooSmallError):
        AbsSendTimeExtension.unmarshal(b"\x01\x02")


@pytest.mark.parametrize(
    "send_ntp, receive_ntp",
    [
        (0xA0C65B1000100000, 0xA0C65B1001000000),  # not carried
        (0xA0C65B3F00000000, 0xA0C65B4001000000),  # carried during transmission
    ],
)
def test_estimate(send_ntp, receive_ntp):
    in_time = from_ntp_time(send_ntp)
    send = AbsSendTimeExtension(timestamp=send_ntp >> 14)
    received = AbsSendTimeExtension.unmarshal(send.marshal())
    estimated = received.estimate(from_ntp_time(receive_ntp))
    assert abs(estimated - in_time) <= RESOLUTION_NS


def test_from_send_time():
    unix_ns, ntp = NTP_CASES[0]
    assert AbsSendTimeExtension.from_send_time(unix_ns).timestamp == ntp >> 14