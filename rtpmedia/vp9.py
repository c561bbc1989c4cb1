"""VP9 RTP payloading and depayloading."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass, field

from .depacketizer import VideoDepacketizer
from .errors import (
    NilPacketError,
    ShortPacketError,
    TooManyPDiffError,
    TooManySpatialLayersError,
)

VP9_HEADER_SIZE = 3  # flexible mode with a 15 bit picture ID
MAX_SPATIAL_LAYERS = 5
MAX_VP9_REF_PICS = 3


def _random_picture_id() -> int:
    return secrets.randbelow(0x7FFF)


class VP9Payloader:
    """Splits VP9 frames into flexible mode RTP payloads.

    The first picture ID comes from ``initial_picture_id_fn``, random by default.
    """

    def __init__(self, initial_picture_id_fn: Callable[[], int] | None = None) -> None:
        self.initial_picture_id_fn = initial_picture_id_fn
        self._picture_id = 0
        self._initialized = False

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment a frame across payloads of at most ``mtu`` bytes."""
        if not self._initialized:
            if self.initial_picture_id_fn is None:
                self.initial_picture_id_fn = _random_picture_id
            self._picture_id = self.initial_picture_id_fn() & 0x7FFF
            self._initialized = True
        if payload is None:
            return []

        data = bytes(payload)
        max_fragment_size = mtu - VP9_HEADER_SIZE
        if min(max_fragment_size, len(data)) <= 0:
            return []

        picture_id = self._picture_id
        payloads = []
        for index in range(0, len(data), max_fragment_size):
            fragment = data[index : index + max_fragment_size]
            flags = 0x90  # F=1 I=1
            if index == 0:
                flags |= 0x08  # B=1
            if index + len(fragment) == len(data):
                flags |= 0x04  # E=1
            header = bytes((flags, ((picture_id >> 8) & 0xFF) | 0x80, picture_id & 0xFF))
            payloads.append(header + fragment)

        self._picture_id = picture_id + 1
        if self._picture_id >= 0x8000:
            self._picture_id = 0
        return payloads


@dataclass
class VP9Packet(VideoDepacketizer):
    """The VP9 payload descriptor of an RTP payload and the data it carries."""

    i: bool = False
    p: bool = False
    l: bool = False  # noqa: E741
    f: bool = False
    b: bool = False
    e: bool = False
    v: bool = False
    z: bool = False

    picture_id: int = 0

    tid: int = 0
    u: bool = False
    sid: int = 0
    d: bool = False

    pdiff: list[int] = field(default_factory=list)
    tl0picidx: int = 0

    ns: int = 0
    y: bool = False
    g: bool = False
    ng: int = 0
    width: list[int] = field(default_factory=list)
    height: list[int] = field(default_factory=list)
    pg_tid: list[int] = field(default_factory=list)
    pg_u: list[bool] = field(default_factory=list)
    pg_pdiff: list[list[int]] = field(default_factory=list)

    payload: bytes = b""

    def _reset(self) -> None:
        self.picture_id = 0
        self.tid = self.sid = self.tl0picidx = 0
        self.u = self.d = False
        self.pdiff = []
        self.ns = self.ng = 0
        self.y = self.g = False
        self.width = []
        self.height = []
        self.pg_tid = []
        self.pg_u = []
        self.pg_pdiff = []
        self.payload = b""

    def unmarshal(self, packet: bytes | None) -> bytes:
        """Parse the descriptor into this packet and return the VP9 data."""
        if packet is None:
            raise NilPacketError()
        if len(packet) < 1:
            raise ShortPacketError()
        packet = bytes(packet)
        self._reset()

        head = packet[0]
        self.i = head & 0x80 != 0
        self.p = head & 0x40 != 0
        self.l = head & 0x20 != 0
        self.f = head & 0x10 != 0
        self.b = head & 0x08 != 0
        self.e = head & 0x04 != 0
        self.v = head & 0x02 != 0
        self.z = head & 0x01 != 0

        pos = 1
        if self.i:
            pos = self._parse_picture_id(packet, pos)
        if self.l:
            pos = self._parse_layer_info(packet, pos)
        if self.f and self.p:
            pos = self._parse_ref_indices(packet, pos)
        if self.v:
            pos = self._parse_ss_data(packet, pos)

        self.payload = packet[pos:]
        return self.payload

    def _parse_picture_id(self, packet: bytes, pos: int) -> int:
        if len(packet) <= pos:
            raise ShortPacketError()
        self.picture_id = packet[pos] & 0x7F
        if packet[pos] & 0x80:
            pos += 1
            if len(packet) <= pos:
                raise ShortPacketError()
            self.picture_id = (self.picture_id << 8) | packet[pos]
        return pos + 1

    def _parse_layer_info(self, packet: bytes, pos: int) -> int:
        if len(packet) <= pos:
            raise ShortPacketError()
        byte = packet[pos]
        self.tid = byte >> 5
        self.u = byte & 0x10 != 0
        self.sid = (byte >> 1) & 0x7
        self.d = byte & 0x01 != 0
        if self.sid >= MAX_SPATIAL_LAYERS:
            raise TooManySpatialLayersError()
        pos += 1

        if self.f:
            return pos
        if len(packet) <= pos:
            raise ShortPacketError()
        self.tl0picidx = packet[pos]
        return pos + 1

    def _parse_ref_indices(self, packet: bytes, pos: int) -> int:
        while True:
            if len(packet) <= pos:
                raise ShortPacketError()
            self.pdiff.append(packet[pos] >> 1)
            if packet[pos] & 0x01 == 0:
                break
            if len(self.pdiff) >= MAX_VP9_REF_PICS:
                raise TooManyPDiffError()
            pos += 1
        return pos + 1

    def _parse_ss_data(self, packet: bytes, pos: int) -> int:
        if len(packet) <= pos:
            raise ShortPacketError()
        byte = packet[pos]
        self.ns = byte >> 5
        self.y = byte & 0x10 != 0
        self.g = (byte >> 1) & 0x7 != 0
        pos += 1

        layers = self.ns + 1
        self.ng = 0

        if self.y:
            self.width = []
            self.height = []
            for _ in range(layers):
                if len(packet) <= pos + 3:
                    raise ShortPacketError()
                self.width.append((packet[pos] << 8) | packet[pos + 1])
                self.height.append((packet[pos + 2] << 8) | packet[pos + 3])
                pos += 4

        if self.g:
            if len(packet) <= pos:
                raise ShortPacketError()
            self.ng = packet[pos]
            pos += 1

        for _ in range(self.ng):
            if len(packet) <= pos:
                raise ShortPacketError()
            byte = packet[pos]
            self.pg_tid.append(byte >> 5)
            self.pg_u.append(byte & 0x10 != 0)
            refs = (byte >> 2) & 0x3
            pos += 1

            if len(packet) < pos + refs:
                self.pg_pdiff.append([])
                raise ShortPacketError()
            self.pg_pdiff.append(list(packet[pos : pos + refs]))
            pos += refs

        return pos

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Whether the B bit marks the start of a VP9 frame."""
        if not payload:
            return False
        return payload[0] & 0x08 != 0