"""VP8 RTP payloading and depayloading."""

from __future__ import annotations

from dataclasses import dataclass, field

from .depacketizer import VideoDepacketizer
from .errors import NilPacketError, ShortPacketError

VP8_HEADER_SIZE = 1


@dataclass
class VP8Payloader:
    """Splits VP8 frames into RTP payloads with a VP8 payload descriptor.

    When ``enable_picture_id`` is set, a non-zero picture ID is written into
    each descriptor and advanced after every frame.
    """

    enable_picture_id: bool = False
    picture_id: int = 0

    def _header_size(self) -> int:
        if not self.enable_picture_id or self.picture_id == 0:
            return VP8_HEADER_SIZE
        if self.picture_id < 128:
            return VP8_HEADER_SIZE + 2
        return VP8_HEADER_SIZE + 3

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment a frame across payloads of at most ``mtu`` bytes."""
        data = bytes(payload or b"")
        header_size = self._header_size()
        max_fragment_size = mtu - header_size
        if min(max_fragment_size, len(data)) <= 0:
            return []

        payloads = []
        for index in range(0, len(data), max_fragment_size):
            header = bytearray(header_size)
            if index == 0:
                header[0] = 0x10  # start of partition
            if header_size == VP8_HEADER_SIZE + 2:
                header[0] |= 0x80
                header[1] |= 0x80
                header[2] |= self.picture_id & 0x7F
            elif header_size == VP8_HEADER_SIZE + 3:
                header[0] |= 0x80
                header[1] |= 0x80
                header[2] |= 0x80 | ((self.picture_id >> 8) & 0x7F)
                header[3] |= self.picture_id & 0xFF
            payloads.append(bytes(header) + data[index : index + max_fragment_size])

        self.picture_id = (self.picture_id + 1) & 0x7FFF
        return payloads


@dataclass
class VP8Packet(VideoDepacketizer):
    """The VP8 payload descriptor of an RTP payload and the data it carries."""

    x: int = 0
    n: int = 0
    s: int = 0
    pid: int = 0
    i: int = 0
    l: int = 0  # noqa: E741
    t: int = 0
    k: int = 0
    picture_id: int = 0
    tl0picidx: int = 0
    tid: int = 0
    y: int = 0
    keyidx: int = 0
    payload: bytes = field(default=b"")

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse the descriptor into this packet and return the VP8 data."""
        if payload is None:
            raise NilPacketError()
        payload = bytes(payload)
        size = len(payload)
        index = 0

        if index >= size:
            raise ShortPacketError()
        head = payload[index]
        self.x = (head & 0x80) >> 7
        self.n = (head & 0x20) >> 5
        self.s = (head & 0x10) >> 4
        self.pid = head & 0x07
        index += 1

        if self.x == 1:
            if index >= size:
                raise ShortPacketError()
            ext = payload[index]
            self.i = (ext & 0x80) >> 7
            self.l = (ext & 0x40) >> 6
            self.t = (ext & 0x20) >> 5
            self.k = (ext & 0x10) >> 4
            index += 1
        else:
            self.i = self.l = self.t = self.k = 0

        self.picture_id = 0
        if self.i == 1:
            if index >= size:
                raise ShortPacketError()
            if payload[index] & 0x80:
                # M bit set: the picture ID takes 15 bits.
                if index + 1 >= size:
                    raise ShortPacketError()
                self.picture_id = ((payload[index] & 0x7F) << 8) | payload[index + 1]
                index += 2
            else:
                self.picture_id = payload[index]
                index += 1

        self.tl0picidx = 0
        if self.l == 1:
            if index >= size:
                raise ShortPacketError()
            self.tl0picidx = payload[index]
            index += 1

        self.tid = self.y = self.keyidx = 0
        if self.t == 1 or self.k == 1:
            if index >= size:
                raise ShortPacketError()
            byte = payload[index]
            if self.t == 1:
                self.tid = byte >> 6
                self.y = (byte >> 5) & 0x1
            if self.k == 1:
                self.keyidx = byte & 0x1F
            index += 1

        self.payload = payload[index:]
        return self.payload

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Whether the S bit marks the start of a VP8 partition."""
        if not payload:
            return False
        return payload[0] & 0x10 != 0