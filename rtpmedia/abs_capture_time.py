"""The abs-capture-time RTP header extension."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .abs_send_time import from_ntp_time, to_ntp_time
from .errors import BufferTooSmallError

ABS_CAPTURE_TIME_EXTENSION_SIZE = 8
ABS_CAPTURE_TIME_EXTENDED_EXTENSION_SIZE = 16

_NS_PER_SECOND = 1_000_000_000
_MASK64 = (1 << 64) - 1


def _to_signed64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >= 1 << 63 else value


@dataclass
class AbsCaptureTimeExtension:
    """Absolute capture time as an NTP timestamp, with an optional clock offset.

    The clock offset is a signed Q32.32 fixed point number of seconds.
    """

    timestamp: int = 0
    estimated_capture_clock_offset: int | None = None

    def marshal(self) -> bytes:
        """Serialize the extension payload."""
        if self.estimated_capture_clock_offset is not None:
            return struct.pack(
                ">Qq",
                self.timestamp & _MASK64,
                _to_signed64(self.estimated_capture_clock_offset),
            )
        return struct.pack(">Q", self.timestamp & _MASK64)

    @classmethod
    def unmarshal(cls, raw_data: bytes) -> AbsCaptureTimeExtension:
        """Parse an extension payload."""
        if len(raw_data) < ABS_CAPTURE_TIME_EXTENSION_SIZE:
            raise BufferTooSmallError()
        (timestamp,) = struct.unpack_from(">Q", raw_data, 0)
        offset = None
        if len(raw_data) >= ABS_CAPTURE_TIME_EXTENDED_EXTENSION_SIZE:
            (offset,) = struct.unpack_from(">q", raw_data, 8)
        return cls(timestamp=timestamp, estimated_capture_clock_offset=offset)

    def capture_time(self) -> int:
        """Return the capture time in nanoseconds since the Unix epoch."""
        return from_ntp_time(self.timestamp)

    def estimated_capture_clock_offset_ns(self) -> int | None:
        """Return the clock offset in nanoseconds, or None when absent."""
        if self.estimated_capture_clock_offset is None:
            return None
        offset = self.estimated_capture_clock_offset
        negative = offset < 0
        offset = abs(offset)
        duration = (offset >> 32) * _NS_PER_SECOND + (
            (offset & 0xFFFFFFFF) * _NS_PER_SECOND >> 32
        )
        return -duration if negative else duration

    @classmethod
    def from_capture_time(
        cls, capture_ns: int, clock_offset_ns: int | None = None
    ) -> AbsCaptureTimeExtension:
        """Build the extension from a Unix time in nanoseconds and an optional offset."""
        timestamp = to_ntp_time(capture_ns)
        if clock_offset_ns is None:
            return cls(timestamp=timestamp)
        negative = clock_offset_ns < 0
        ns = abs(clock_offset_ns)
        whole = (ns // _NS_PER_SECOND) & 0xFFFFFFFF
        fraction = (((ns % _NS_PER_SECOND) << 32) // _NS_PER_SECOND) & 0xFFFFFFFF
        offset = _to_signed64((whole << 32) | fraction)
        if negative:
            offset = _to_signed64(-offset)
        return cls(timestamp=timestamp, estimated_capture_clock_offset=offset)