"""The abs-send-time RTP header extension and NTP time conversion."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import BufferTooSmallError

ABS_SEND_TIME_EXTENSION_SIZE = 3

_NS_PER_SECOND = 1_000_000_000
_NTP_UNIX_OFFSET = 0x83AA7E80  # seconds between the NTP epoch and the Unix epoch
_MASK64 = (1 << 64) - 1


def _to_signed64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >= 1 << 63 else value


def to_ntp_time(unix_ns: int) -> int:
    """Convert nanoseconds since the Unix epoch to a 64-bit NTP timestamp."""
    unsigned = unix_ns & _MASK64
    seconds = unsigned // _NS_PER_SECOND + _NTP_UNIX_OFFSET
    fraction = ((unsigned % _NS_PER_SECOND) << 32) // _NS_PER_SECOND
    return ((seconds << 32) | fraction) & _MASK64


def from_ntp_time(ntp: int) -> int:
    """Convert a 64-bit NTP timestamp to nanoseconds since the Unix epoch."""
    seconds = (ntp >> 32) & 0xFFFFFFFF
    fraction = ((ntp & 0xFFFFFFFF) * _NS_PER_SECOND) >> 32
    return _to_signed64((seconds - _NTP_UNIX_OFFSET) * _NS_PER_SECOND + fraction)


@dataclass
class AbsSendTimeExtension:
    """Absolute send time: the 24 bits 6.18 fixed point of an NTP timestamp."""

    timestamp: int = 0

    def marshal(self) -> bytes:
        """Serialize the extension payload."""
        return bytes(
            (
                (self.timestamp & 0xFF0000) >> 16,
                (self.timestamp & 0xFF00) >> 8,
                self.timestamp & 0xFF,
            )
        )

    @classmethod
    def unmarshal(cls, raw_data: bytes) -> AbsSendTimeExtension:
        """Parse an extension payload."""
        if len(raw_data) < ABS_SEND_TIME_EXTENSION_SIZE:
            raise BufferTooSmallError()
        return cls(timestamp=(raw_data[0] << 16) | (raw_data[1] << 8) | raw_data[2])

    def estimate(self, receive_ns: int) -> int:
        """Estimate the absolute send time in Unix nanoseconds from the receive time.

        The estimate is wrong if the transmission delay exceeds 64 seconds.
        """
        receive_ntp = to_ntp_time(receive_ns)
        ntp = (receive_ntp & 0xFFFFFFC000000000) | ((self.timestamp & 0xFFFFFF) << 14)
        if receive_ntp < ntp:
            # The receive time must always be later than the send time.
            ntp = (ntp - (0x1000000 << 14)) & _MASK64
        return from_ntp_time(ntp)

    @classmethod
    def from_send_time(cls, send_ns: int) -> AbsSendTimeExtension:
        """Build the extension for a send time in Unix nanoseconds."""
        return cls(timestamp=to_ntp_time(send_ns) >> 14)