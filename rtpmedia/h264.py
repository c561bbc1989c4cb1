"""H.264 RTP payloading and depayloading."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass, field

from .depacketizer import VideoDepacketizer
from .errors import ShortPacketError, UnhandledNALUTypeError

STAPA_NALU_TYPE = 24
FUA_NALU_TYPE = 28
FUB_NALU_TYPE = 29
SPS_NALU_TYPE = 7
PPS_NALU_TYPE = 8
AUD_NALU_TYPE = 9
FILLER_NALU_TYPE = 12

FUA_HEADER_SIZE = 2
STAPA_HEADER_SIZE = 1
STAPA_NALU_LENGTH_SIZE = 2

NALU_TYPE_BITMASK = 0x1F
NALU_REF_IDC_BITMASK = 0x60
FU_START_BITMASK = 0x80
FU_END_BITMASK = 0x40

OUTPUT_STAPA_HEADER = 0x78

NALU_START_CODE = b"\x00\x00\x01"
ANNEXB_NALU_START_CODE = b"\x00\x00\x00\x01"


def emit_nalus(nals: bytes) -> Iterator[bytes]:
    """Yield the NAL units of an Annex B byte stream.

    A four byte start code is looked for first, then a three byte one.
    """
    nals = bytes(nals)
    start = 0
    while start < len(nals):
        end = nals.find(ANNEXB_NALU_START_CODE, start)
        offset = 4
        if end == -1:
            end = nals.find(NALU_START_CODE, start)
            offset = 3
        if end == -1:
            yield nals[start:]
            return
        yield nals[start:end]
        start = end + offset


class H264Payloader:
    """Packs H.264 NAL units into RTP payloads.

    SPS and PPS units are held back and sent as a STAP-A before the next unit.
    """

    def __init__(self) -> None:
        self._sps_nalu: bytes | None = None
        self._pps_nalu: bytes | None = None

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Split an Annex B stream into payloads of at most ``mtu`` bytes."""
        payloads: list[bytes] = []
        if not payload:
            return payloads
        for nalu in emit_nalus(payload):
            payloads.extend(self._packetize(mtu, nalu))
        return payloads

    def _packetize(self, mtu: int, nalu: bytes) -> Iterator[bytes]:
        if not nalu:
            return

        nalu_type = nalu[0] & NALU_TYPE_BITMASK
        nalu_ref_idc = nalu[0] & NALU_REF_IDC_BITMASK

        if nalu_type in (AUD_NALU_TYPE, FILLER_NALU_TYPE):
            return
        if nalu_type == SPS_NALU_TYPE:
            self._sps_nalu = nalu
            return
        if nalu_type == PPS_NALU_TYPE:
            self._pps_nalu = nalu
            return
        if self._sps_nalu is not None and self._pps_nalu is not None:
            stapa = (
                bytes((OUTPUT_STAPA_HEADER,))
                + struct.pack(">H", len(self._sps_nalu) & 0xFFFF)
                + self._sps_nalu
                + struct.pack(">H", len(self._pps_nalu) & 0xFFFF)
                + self._pps_nalu
            )
            if len(stapa) <= mtu:
                yield stapa
            self._sps_nalu = None
            self._pps_nalu = None

        if len(nalu) <= mtu:
            yield nalu
            return

        # FU-A: the NAL unit header byte is carried in the FU indicator and header.
        max_fragment_size = mtu - FUA_HEADER_SIZE
        data = nalu[1:]
        if min(max_fragment_size, len(data)) <= 0:
            return

        for index in range(0, len(data), max_fragment_size):
            fragment = data[index : index + max_fragment_size]
            fu_header = nalu_type
            if index == 0:
                fu_header |= FU_START_BITMASK
            elif index + len(fragment) == len(data):
                fu_header |= FU_END_BITMASK
            yield bytes((FUA_NALU_TYPE | nalu_ref_idc, fu_header)) + fragment


@dataclass
class H264Packet(VideoDepacketizer):
    """Depacketizes H.264 RTP payloads into Annex B or AVC formatted NAL units."""

    is_avc: bool = False
    _fua_buffer: bytearray | None = field(default=None, repr=False, compare=False)

    def _package(self, nalu: bytes) -> bytes:
        if self.is_avc:
            return struct.pack(">I", len(nalu)) + nalu
        return ANNEXB_NALU_START_CODE + nalu

    def is_detected_final_packet_in_sequence(self, marker: bool) -> bool:
        """Whether the marker bit ends the packet sequence."""
        return self.is_partition_tail(marker, b"")

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse a payload; returns the NAL units it completes, possibly none."""
        if not payload:
            size = 0 if payload is None else len(payload)
            raise ShortPacketError(f"{ShortPacketError.default_message}: {size} <=0")
        payload = bytes(payload)

        nalu_type = payload[0] & NALU_TYPE_BITMASK
        if 0 < nalu_type < 24:
            return self._package(payload)

        if nalu_type == STAPA_NALU_TYPE:
            offset = STAPA_HEADER_SIZE
            result = bytearray()
            while offset < len(payload):
                if offset + STAPA_NALU_LENGTH_SIZE > len(payload):
                    raise ShortPacketError()
                (nalu_size,) = struct.unpack_from(">H", payload, offset)
                offset += STAPA_NALU_LENGTH_SIZE
                if len(payload) < offset + nalu_size:
                    raise ShortPacketError(
                        f"{ShortPacketError.default_message} STAP-A declared size"
                        f"({nalu_size}) is larger than buffer({len(payload) - offset})"
                    )
                result += self._package(payload[offset : offset + nalu_size])
                offset += nalu_size
            return bytes(result)

        if nalu_type == FUA_NALU_TYPE:
            if len(payload) < FUA_HEADER_SIZE:
                raise ShortPacketError()
            if self._fua_buffer is None:
                self._fua_buffer = bytearray()
            self._fua_buffer += payload[FUA_HEADER_SIZE:]

            if payload[1] & FU_END_BITMASK:
                nalu_ref_idc = payload[0] & NALU_REF_IDC_BITMASK
                fragmented_type = payload[1] & NALU_TYPE_BITMASK
                nalu = bytes((nalu_ref_idc | fragmented_type,)) + bytes(self._fua_buffer)
                self._fua_buffer = None
                return self._package(nalu)
            return b""

        raise UnhandledNALUTypeError(
            f"{UnhandledNALUTypeError.default_message}: {nalu_type}"
        )

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Whether the payload starts a packetized NAL unit."""
        if payload is None or len(payload) < 2:
            return False
        if payload[0] & NALU_TYPE_BITMASK in (FUA_NALU_TYPE, FUB_NALU_TYPE):
            return payload[1] & FU_START_BITMASK != 0
        return True