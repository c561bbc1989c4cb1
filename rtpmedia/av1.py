"""AV1 RTP payloading, depayloading and OBU reassembly."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import KeyframeAndFragmentError, NilPacketError, ShortPacketError
from .leb128 import encode_leb128, read_leb128

Z_MASK = 0b10000000
Z_SHIFT = 7
Y_MASK = 0b01000000
Y_SHIFT = 6
W_MASK = 0b00110000
W_SHIFT = 4
N_MASK = 0b00001000
N_SHIFT = 3

_OBU_FRAME_TYPE_MASK = 0b01111000
_OBU_FRAME_TYPE_SHIFT = 3
_OBU_TYPE_SEQUENCE_HEADER = 1

_AGGREGATION_HEADER_SIZE = 1
_LEB128_SIZE = 1


class AV1Payloader:
    """Splits AV1 OBUs into RTP payloads.

    A sequence header OBU is held back and sent together with the next OBU.
    """

    def __init__(self) -> None:
        self._sequence_header: bytes | None = None

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment an OBU across one or more payloads of at most ``mtu`` bytes."""
        payloads: list[bytes] = []
        if mtu <= 0 or not payload:
            return payloads

        frame_type = (payload[0] & _OBU_FRAME_TYPE_MASK) >> _OBU_FRAME_TYPE_SHIFT
        if frame_type == _OBU_TYPE_SEQUENCE_HEADER:
            self._sequence_header = bytes(payload)
            return payloads

        index = 0
        remaining = len(payload)
        while remaining > 0:
            sequence_header = self._sequence_header
            obu_count = 1
            metadata_size = _AGGREGATION_HEADER_SIZE
            if sequence_header:
                obu_count += 1
                metadata_size += _LEB128_SIZE + len(sequence_header)

            size = min(mtu, remaining + metadata_size)
            prefix = bytearray((obu_count << W_SHIFT,))
            if sequence_header:
                # This payload starts a coded video sequence.
                prefix[0] ^= N_MASK
                prefix.append(encode_leb128(len(sequence_header)) & 0xFF)
                prefix += sequence_header

            chunk = size - len(prefix)
            if chunk < 0 or (chunk == 0 and not sequence_header):
                raise ValueError(f"mtu {mtu} is too small to carry AV1 data")
            self._sequence_header = None

            out = prefix + payload[index : index + chunk]
            remaining -= chunk
            index += chunk

            # The first element continues an OBU from the previous payload.
            if payloads:
                out[0] ^= Z_MASK
            # The last element continues in the next payload.
            if remaining:
                out[0] ^= Y_MASK

            payloads.append(bytes(out))

        return payloads


@dataclass
class AV1Packet:
    """A depacketized AV1 RTP payload: the aggregation header and its OBU elements."""

    z: bool = False
    y: bool = False
    w: int = 0
    n: bool = False
    obu_elements: list[bytes] = field(default_factory=list)

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse a payload into this packet and return it without the aggregation header."""
        if payload is None:
            raise NilPacketError()
        if len(payload) < 2:
            raise ShortPacketError()
        payload = bytes(payload)

        head = payload[0]
        self.z = (head & Z_MASK) >> Z_SHIFT != 0
        self.y = (head & Y_MASK) >> Y_SHIFT != 0
        self.n = (head & N_MASK) >> N_SHIFT != 0
        self.w = (head & W_MASK) >> W_SHIFT

        if self.z and self.n:
            raise KeyframeAndFragmentError()

        elements: list[bytes] = []
        self.obu_elements = elements
        current = 1
        count = 0
        while current < len(payload):
            count += 1
            # With W set, the last element carries no length field.
            if count & 0xFF == self.w:
                length, read = len(payload) - current, 0
            else:
                length, read = read_leb128(payload[current:])

            current += read
            if len(payload) < current + length:
                raise ShortPacketError()
            elements.append(payload[current : current + length])
            current += length

        return payload[1:]


class AV1FrameAssembler:
    """Rebuilds whole OBUs from the OBU elements of a stream of AV1 packets.

    Keeps the fragment of an unfinished OBU between calls, so one instance
    serves one RTP stream.
    """

    def __init__(self) -> None:
        self._obu_buffer: bytes | None = None

    def read_frames(self, packet: AV1Packet) -> list[bytes]:
        """Return the OBUs completed by this packet."""
        obus: list[bytes] = []
        continues_previous = packet.z

        for element in packet.obu_elements:
            if continues_previous:
                continues_previous = False
                if self._obu_buffer is None:
                    # Nothing to join this fragment to.
                    continue
                element = self._obu_buffer + element
                self._obu_buffer = None
            obus.append(bytes(element))

        if packet.y and obus:
            self._obu_buffer = (self._obu_buffer or b"") + obus.pop()

        return obus