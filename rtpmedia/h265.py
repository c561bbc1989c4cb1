"""H.265 RTP depayloading: NAL unit headers and the four packet forms."""

from __future__ import annotations

from dataclasses import dataclass, field

from .depacketizer import VideoDepacketizer
from .errors import (
    H265CorruptedPacketError,
    InvalidH265PacketTypeError,
    NilPacketError,
    ShortPacketError,
)

H265_NALU_HEADER_SIZE = 2
H265_NALU_AGGREGATION_PACKET_TYPE = 48
H265_NALU_FRAGMENTATION_UNIT_TYPE = 49
H265_NALU_PACI_PACKET_TYPE = 50
H265_FRAGMENTATION_UNIT_HEADER_SIZE = 1


def _short(size: int, header_size: int) -> ShortPacketError:
    return ShortPacketError(f"{ShortPacketError.default_message}: {size} <= {header_size}")


def _check_size(payload: bytes | None, header_size: int) -> bytes:
    if payload is None:
        raise NilPacketError()
    if len(payload) <= header_size:
        raise _short(len(payload), header_size)
    return bytes(payload)


@dataclass(frozen=True)
class H265NALUHeader:
    """The two byte H.265 NAL unit header: F, Type, LayerID and TID."""

    value: int = 0

    @classmethod
    def from_bytes(cls, high: int, low: int) -> H265NALUHeader:
        """Build a header from its two bytes."""
        return cls(((high & 0xFF) << 8) | (low & 0xFF))

    def f(self) -> bool:
        """The forbidden bit, which should always be clear."""
        return (self.value >> 15) & 0x1 != 0

    def type(self) -> int:
        """The NAL unit type."""
        return (self.value & (0b01111110 << 8)) >> 9

    def is_type_vcl_unit(self) -> bool:
        """Whether the NAL unit type is a VCL NAL unit."""
        return self.type() & 0b00100000 == 0

    def layer_id(self) -> int:
        """The layer identifier, zero outside 3D HEVC."""
        return (self.value & ((0b00000001 << 8) | 0b11111000)) >> 3

    def tid(self) -> int:
        """The temporal identifier plus one."""
        return self.value & 0b00000111

    def is_aggregation_packet(self) -> bool:
        """Whether the type is that of an aggregation packet."""
        return self.type() == H265_NALU_AGGREGATION_PACKET_TYPE

    def is_fragmentation_unit(self) -> bool:
        """Whether the type is that of a fragmentation unit."""
        return self.type() == H265_NALU_FRAGMENTATION_UNIT_TYPE

    def is_paci_packet(self) -> bool:
        """Whether the type is that of a PACI packet."""
        return self.type() == H265_NALU_PACI_PACKET_TYPE


@dataclass(frozen=True)
class H265FragmentationUnitHeader:
    """The one byte fragmentation unit header: S, E and FuType."""

    value: int = 0

    def s(self) -> bool:
        """Whether this fragment starts the fragmented NAL unit."""
        return self.value & 0b10000000 != 0

    def e(self) -> bool:
        """Whether this fragment ends the fragmented NAL unit."""
        return self.value & 0b01000000 != 0

    def fu_type(self) -> int:
        """The type of the fragmented NAL unit."""
        return self.value & 0b00111111


@dataclass(frozen=True)
class H265TSCI:
    """Temporal Scalability Control Information header extension."""

    value: int = 0

    def tl0picidx(self) -> int:
        """The TL0PICIDX field."""
        return ((((self.value & 0xFFFF0000) >> 16) & 0xFF00) >> 8) & 0xFF

    def irap_pic_id(self) -> int:
        """The IrapPicID field."""
        return ((self.value & 0xFFFF0000) >> 16) & 0x00FF

    def s(self) -> bool:
        """The S flag."""
        return ((self.value & 0xFF00) >> 8) & 0b10000000 != 0

    def e(self) -> bool:
        """The E flag."""
        return ((self.value & 0xFF00) >> 8) & 0b01000000 != 0

    def res(self) -> int:
        """The reserved bits."""
        return ((self.value & 0xFF00) >> 8) & 0b00111111


@dataclass
class H265SingleNALUnitPacket:
    """A packet holding exactly one NAL unit.

    Set ``might_need_donl`` when ``sprop-max-don-diff`` is above zero.
    """

    might_need_donl: bool = False
    payload_header: H265NALUHeader = field(default_factory=H265NALUHeader)
    donl: int | None = None
    payload: bytes = b""

    def unmarshal(self, payload: bytes | None) -> None:
        """Parse a payload into this packet."""
        payload = _check_size(payload, H265_NALU_HEADER_SIZE)
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.f():
            raise H265CorruptedPacketError()
        if (
            header.is_fragmentation_unit()
            or header.is_paci_packet()
            or header.is_aggregation_packet()
        ):
            raise InvalidH265PacketTypeError()

        payload = payload[2:]
        if self.might_need_donl:
            if len(payload) <= 2:
                raise ShortPacketError()
            self.donl = (payload[0] << 8) | payload[1]
            payload = payload[2:]

        self.payload_header = header
        self.payload = payload


@dataclass(frozen=True)
class H265AggregationUnitFirst:
    """The first aggregation unit of an aggregation packet."""

    donl: int | None
    nal_unit_size: int
    nal_unit: bytes


@dataclass(frozen=True)
class H265AggregationUnit:
    """An aggregation unit after the first one."""

    dond: int | None
    nal_unit_size: int
    nal_unit: bytes


@dataclass
class H265AggregationPacket:
    """An aggregation packet holding two or more NAL units."""

    might_need_donl: bool = False
    first_unit: H265AggregationUnitFirst | None = None
    other_units: list[H265AggregationUnit] = field(default_factory=list)

    def unmarshal(self, payload: bytes | None) -> None:
        """Parse a payload into this packet."""
        payload = _check_size(payload, H265_NALU_HEADER_SIZE)
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.f():
            raise H265CorruptedPacketError()
        if not header.is_aggregation_packet():
            raise InvalidH265PacketTypeError()

        payload = payload[2:]
        donl = None
        if self.might_need_donl:
            if len(payload) < 2:
                raise ShortPacketError()
            donl = (payload[0] << 8) | payload[1]
            payload = payload[2:]
        if len(payload) < 2:
            raise ShortPacketError()
        size = (payload[0] << 8) | payload[1]
        payload = payload[2:]
        if len(payload) < size:
            raise ShortPacketError()
        first = H265AggregationUnitFirst(donl, size, payload[:size])
        payload = payload[size:]

        units: list[H265AggregationUnit] = []
        while True:
            dond = None
            if self.might_need_donl:
                if len(payload) < 1:
                    break
                dond = payload[0]
                payload = payload[1:]
            if len(payload) < 2:
                break
            size = (payload[0] << 8) | payload[1]
            payload = payload[2:]
            if len(payload) < size:
                break
            units.append(H265AggregationUnit(dond, size, payload[:size]))
            payload = payload[size:]

        # An aggregation packet holds at least two units.
        if not units:
            raise ShortPacketError()

        self.first_unit = first
        self.other_units = units


@dataclass
class H265FragmentationUnitPacket:
    """A single fragmentation unit packet."""

    might_need_donl: bool = False
    payload_header: H265NALUHeader = field(default_factory=H265NALUHeader)
    fu_header: H265FragmentationUnitHeader = field(
        default_factory=H265FragmentationUnitHeader
    )
    donl: int | None = None
    payload: bytes = b""

    def unmarshal(self, payload: bytes | None) -> None:
        """Parse a payload into this packet."""
        payload = _check_size(
            payload, H265_NALU_HEADER_SIZE + H265_FRAGMENTATION_UNIT_HEADER_SIZE
        )
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.f():
            raise H265CorruptedPacketError()
        if not header.is_fragmentation_unit():
            raise InvalidH265PacketTypeError()

        fu_header = H265FragmentationUnitHeader(payload[2])
        payload = payload[3:]

        if fu_header.s() and self.might_need_donl:
            if len(payload) <= 2:
                raise ShortPacketError()
            self.donl = (payload[0] << 8) | payload[1]
            payload = payload[2:]

        self.payload_header = header
        self.fu_header = fu_header
        self.payload = payload


@dataclass
class H265PACIPacket:
    """A PACI packet: a NAL unit with a payload header extension structure."""

    payload_header: H265NALUHeader = field(default_factory=H265NALUHeader)
    paci_header_fields: int = 0
    phes: bytes = b""
    payload: bytes = b""

    def a(self) -> bool:
        """The F bit of the carried NAL unit."""
        return self.paci_header_fields & (0b10000000 << 8) != 0

    def c_type(self) -> int:
        """The Type field of the carried NAL unit."""
        return (self.paci_header_fields & (0b01111110 << 8)) >> 9

    def phs_size(self) -> int:
        """The size of the PHES field."""
        return (self.paci_header_fields & ((0b00000001 << 8) | 0b11110000)) >> 4

    def f0(self) -> bool:
        """Whether a temporal scalability support extension is present."""
        return self.paci_header_fields & 0b00001000 != 0

    def f1(self) -> bool:
        """Reserved, must be clear."""
        return self.paci_header_fields & 0b00000100 != 0

    def f2(self) -> bool:
        """Reserved, must be clear."""
        return self.paci_header_fields & 0b00000010 != 0

    def y(self) -> bool:
        """Reserved, must be clear."""
        return self.paci_header_fields & 0b00000001 != 0

    def tsci(self) -> H265TSCI | None:
        """The Temporal Scalability Control Information, when present."""
        if not self.f0() or self.phs_size() < 3:
            return None
        return H265TSCI((self.phes[0] << 16) | (self.phes[1] << 8) | self.phes[0])

    def unmarshal(self, payload: bytes | None) -> None:
        """Parse a payload into this packet."""
        payload = _check_size(payload, H265_NALU_HEADER_SIZE + 2)
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.f():
            raise H265CorruptedPacketError()
        if not header.is_paci_packet():
            raise InvalidH265PacketTypeError()

        self.paci_header_fields = (payload[2] << 8) | payload[3]
        payload = payload[4:]
        extension_size = self.phs_size()

        if len(payload) < extension_size + 1:
            self.paci_header_fields = 0
            raise ShortPacketError()

        self.payload_header = header
        if extension_size > 0:
            self.phes = payload[:extension_size]
        self.payload = payload[extension_size:]


H265AnyPacket = (
    H265SingleNALUnitPacket
    | H265AggregationPacket
    | H265FragmentationUnitPacket
    | H265PACIPacket
)


@dataclass
class H265Packet(VideoDepacketizer):
    """An H.265 RTP payload, parsed into whichever packet form it holds."""

    might_need_donl: bool = False
    packet: H265AnyPacket | None = None

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse a payload into ``packet``; no media data is returned."""
        payload = _check_size(payload, H265_NALU_HEADER_SIZE)
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.f():
            raise H265CorruptedPacketError()

        decoded: H265AnyPacket
        if header.is_paci_packet():
            decoded = H265PACIPacket()
        elif header.is_fragmentation_unit():
            decoded = H265FragmentationUnitPacket(might_need_donl=self.might_need_donl)
        elif header.is_aggregation_packet():
            decoded = H265AggregationPacket(might_need_donl=self.might_need_donl)
        else:
            decoded = H265SingleNALUnitPacket(might_need_donl=self.might_need_donl)
        decoded.unmarshal(payload)
        self.packet = decoded
        return b""

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Whether the payload starts a packetized NAL unit."""
        if payload is None or len(payload) < 3:
            return False
        header = H265NALUHeader.from_bytes(payload[0], payload[1])
        if header.type() == H265_NALU_FRAGMENTATION_UNIT_TYPE:
            return H265FragmentationUnitHeader(payload[2]).s()
        return True