"""H.265 RTP payloading: single NAL units, aggregation packets and fragmentation units."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .errors import ShortPacketError
from .h264 import emit_nalus
from .h265 import (
    H265_FRAGMENTATION_UNIT_HEADER_SIZE,
    H265_NALU_AGGREGATION_PACKET_TYPE,
    H265_NALU_FRAGMENTATION_UNIT_TYPE,
    H265_NALU_HEADER_SIZE,
    H265NALUHeader,
)

_DONL_SIZE = 2
_LENGTH_SIZE = 2


def _header_of(nalu: bytes) -> H265NALUHeader:
    if len(nalu) < H265_NALU_HEADER_SIZE:
        raise ShortPacketError(
            f"{ShortPacketError.default_message}: {len(nalu)} < {H265_NALU_HEADER_SIZE}"
        )
    return H265NALUHeader.from_bytes(nalu[0], nalu[1])


@dataclass
class H265Payloader:
    """Packs the NAL units of an Annex B H.265 stream into RTP payloads.

    Small NAL units are gathered into aggregation packets unless
    ``skip_aggregation`` is set; NAL units larger than the MTU are split into
    fragmentation units. With ``add_donl`` a decoding order number is written.
    """

    add_donl: bool = False
    skip_aggregation: bool = False
    donl: int = field(default=0, repr=False)

    def _next_donl(self) -> int:
        value = self.donl
        self.donl = (self.donl + 1) & 0xFFFF
        return value

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Split an Annex B stream into payloads sized for ``mtu``."""
        payloads: list[bytes] = []
        if not payload:
            return payloads

        buffered: list[bytes] = []
        buffered_size = 0

        def flush() -> None:
            nonlocal buffered, buffered_size
            if not buffered:
                return
            if len(buffered) == 1:
                payloads.append(self._single(buffered[0]))
            else:
                payloads.append(self._aggregate(buffered))
            buffered = []
            buffered_size = 0

        for nalu in emit_nalus(payload):
            if not nalu:
                continue

            if len(nalu) <= mtu:
                marginal = len(nalu) + _LENGTH_SIZE + (1 if self.add_donl else 0)
                if buffered_size + marginal > mtu:
                    flush()
                buffered.append(nalu)
                buffered_size += marginal
                if self.skip_aggregation:
                    flush()
                continue

            header_size = H265_FRAGMENTATION_UNIT_HEADER_SIZE + H265_NALU_HEADER_SIZE
            if self.add_donl:
                header_size += _DONL_SIZE
            max_fragment = mtu - header_size

            header = _header_of(nalu)
            data = nalu[H265_NALU_HEADER_SIZE:]
            if max_fragment <= 0 or not data:
                continue

            flush()
            payloads.extend(self._fragment(header, data, max_fragment))

        flush()
        return payloads

    def _single(self, nalu: bytes) -> bytes:
        if not self.add_donl:
            return nalu
        return (
            nalu[:H265_NALU_HEADER_SIZE]
            + struct.pack(">H", self._next_donl())
            + nalu[H265_NALU_HEADER_SIZE:]
        )

    def _aggregate(self, nalus: list[bytes]) -> bytes:
        headers = [_header_of(nalu) for nalu in nalus]
        layer_id = min(h.layer_id() for h in headers)
        tid = min(h.tid() for h in headers)

        out = bytearray(
            struct.pack(
                ">H",
                (H265_NALU_AGGREGATION_PACKET_TYPE << 9) | (layer_id << 3) | tid,
            )
        )
        for position, nalu in enumerate(nalus):
            if self.add_donl:
                if position == 0:
                    out += struct.pack(">H", self.donl)
                else:
                    out.append((position - 1) & 0xFF)
            out += struct.pack(">H", len(nalu) & 0xFFFF)
            out += nalu
        return bytes(out)

    def _fragment(
        self, header: H265NALUHeader, data: bytes, max_fragment: int
    ) -> list[bytes]:
        high = ((header.value >> 8) & 0b10000001) | (
            H265_NALU_FRAGMENTATION_UNIT_TYPE << 1
        )
        low = header.value & 0xFF
        fragments = []
        for index in range(0, len(data), max_fragment):
            chunk = data[index : index + max_fragment]
            fu_header = header.type()
            if index == 0:
                fu_header |= 1 << 7
            elif index + len(chunk) == len(data):
                fu_header |= 1 << 6
            out = bytes((high & 0xFF, low, fu_header))
            if self.add_donl:
                out += struct.pack(">H", self._next_donl())
            fragments.append(out + chunk)
        return fragments