"""RTP payloaders and depacketizers for G.711, G.722 and Opus audio."""

from __future__ import annotations

from dataclasses import dataclass

from .depacketizer import AudioDepacketizer
from .errors import NilPacketError, ShortPacketError


def _split_samples(mtu: int, payload: bytes | None) -> list[bytes]:
    """Split raw samples into payloads of at most ``mtu`` bytes."""
    if payload is None or mtu == 0:
        return []
    payload = bytes(payload)
    out = []
    while len(payload) > mtu:
        out.append(payload[:mtu])
        payload = payload[mtu:]
    out.append(payload)
    return out


class G711Payloader:
    """Payloads G.711 samples."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment the samples across one or more payloads."""
        return _split_samples(mtu, payload)


class G722Payloader:
    """Payloads G.722 samples."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment the samples across one or more payloads."""
        return _split_samples(mtu, payload)


class OpusPayloader:
    """Payloads Opus packets: each packet goes whole into one payload."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Return the packet as a single payload; the MTU is ignored."""
        if payload is None:
            return []
        return [bytes(payload)]


@dataclass
class OpusPacket(AudioDepacketizer):
    """An Opus RTP payload."""

    payload: bytes = b""

    def unmarshal(self, packet: bytes | None) -> bytes:
        """Store and return the Opus data of a payload."""
        if packet is None:
            raise NilPacketError()
        if len(packet) == 0:
            raise ShortPacketError()
        self.payload = bytes(packet)
        return self.payload