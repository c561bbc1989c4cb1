import pytest

from rtpmedia.errors import (
    H265CorruptedPacketError,
    InvalidH265PacketTypeError,
    NilPacketError,
    ShortPacketError,
)
from rtpmedia.h265 import (
    H265AggregationPacket,
    H265FragmentationUnitHeader,
    H265FragmentationUnitPacket,
    H265NALUHeader,
    H265Packet,
    H265PACIPacket,
    H265SingleNALUnitPacket,
    H265TSCI,
)


def _hdr(nal_type, layer_id=0, tid=1):
    value = (nal_type << 9) | (layer_id << 3) | tid
    return bytes((value >> 8, value & 0xFF))


@pytest.mark.parametrize(
    "nal_type,layer_id,tid", [(0, 0, 1), (19, 0, 1), (32, 5, 2), (48, 63, 7), (63, 1, 0)]
)
def test_header_fields_round_trip(nal_type, layer_id, tid):
    raw = _hdr(nal_type, layer_id, tid)
    header = H265NALUHeader.from_bytes(raw[0], raw[1])
    assert header.type() == nal_type
    assert header.layer_id() == layer_id
    assert header.tid() == tid
    assert header.f() is False


def test_header_forbidden_bit():
    assert H265NALUHeader.from_bytes(0x80, 0x01).f() is True


@pytest.mark.parametrize("nal_type", range(64))
def test_header_vcl_and_kind(nal_type):
    raw = _hdr(nal_type)
    header = H265NALUHeader.from_bytes(raw[0], raw[1])
    assert header.is_type_vcl_unit() == (nal_type < 32)
    assert header.is_aggregation_packet() == (nal_type == 48)
    assert header.is_fragmentation_unit() == (nal_type == 49)
    assert header.is_paci_packet() == (nal_type == 50)


def test_fragmentation_unit_header():
    start = H265FragmentationUnitHeader(0x80 | 19)
    assert start.s() is True
    assert start.e() is False
    assert start.fu_type() == 19
    end = H265FragmentationUnitHeader(0x40 | 19)
    assert end.s() is False
    assert end.e() is True


def test_tsci_fields():
    tsci = H265TSCI((0x12 << 16) | (0xC5 << 8))
    assert tsci.irap_pic_id() == 0x12
    assert tsci.s() is True
    assert tsci.e() is True
    assert tsci.res() == 0x05


def test_single_nal_unit():
    pkt = H265SingleNALUnitPacket()
    pkt.unmarshal(_hdr(1) + b"\xab\xcd")
    assert pkt.payload == b"\xab\xcd"
    assert pkt.donl is None
    assert pkt.payload_header.type() == 1


def test_single_nal_unit_with_donl():
    pkt = H265SingleNALUnitPacket(might_need_donl=True)
    pkt.unmarshal(_hdr(1) + b"\x00\x05\xab")
    assert pkt.donl == 5
    assert pkt.payload == b"\xab"
    with pytest.raises(ShortPacketError):
        H265SingleNALUnitPacket(might_need_donl=True).unmarshal(_hdr(1) + b"\x00\x05")


@pytest.mark.parametrize("nal_type", [48, 49, 50])
def test_single_nal_unit_rejects_other_types(nal_type):
    with pytest.raises(InvalidH265PacketTypeError):
        H265SingleNALUnitPacket().unmarshal(_hdr(nal_type) + b"\x00\x00")


@pytest.mark.parametrize(
    "packet_cls,data,error",
    [
        (H265SingleNALUnitPacket, None, NilPacketError),
        (H265SingleNALUnitPacket, b"\x02\x01", ShortPacketError),
        (H265SingleNALUnitPacket, b"\x80\x01\x00", H265CorruptedPacketError),
        (H265AggregationPacket, None, NilPacketError),
        (H265AggregationPacket, b"\x60\x01", ShortPacketError),
        (H265AggregationPacket, b"\xe0\x01\x00", H265CorruptedPacketError),
        (H265AggregationPacket, _hdr(1) + b"\x00", InvalidH265PacketTypeError),
        (H265FragmentationUnitPacket, None, NilPacketError),
        (H265FragmentationUnitPacket, _hdr(49) + b"\x80", ShortPacketError),
        (H265FragmentationUnitPacket, _hdr(1) + b"\x80\x00", InvalidH265PacketTypeError),
        (H265PACIPacket, None, NilPacketError),
        (H265PACIPacket, _hdr(50) + b"\x00\x00", ShortPacketError),
        (H265PACIPacket, _hdr(1) + b"\x00\x00\x00", InvalidH265PacketTypeError),
    ],
)
def test_packet_errors(packet_cls, data, error):
    with pytest.raises(error):
        packet_cls().unmarshal(data)


def test_aggregation_packet():
    data = _hdr(48) + b"\x00\x02\xaa\xbb" + b"\x00\x03\xcc\xdd\xee"
    pkt = H265AggregationPacket()
    pkt.unmarshal(data)
    assert pkt.first_unit.nal_unit == b"\xaa\xbb"
    assert pkt.first_unit.nal_unit_size == 2
    assert pkt.first_unit.donl is None
    assert [u.nal_unit for u in pkt.other_units] == [b"\xcc\xdd\xee"]
    assert pkt.other_units[0].nal_unit_size == 3


def test_aggregation_packet_with_donl():
    data = _hdr(48) + b"\x00\x07\x00\x01\xaa" + b"\x02\x00\x01\xbb"
    pkt = H265AggregationPacket(might_need_donl=True)
    pkt.unmarshal(data)
    assert pkt.first_unit.donl == 7
    assert pkt.first_unit.nal_unit == b"\xaa"
    assert pkt.other_units[0].dond == 2
    assert pkt.other_units[0].nal_unit == b"\xbb"


def test_aggregation_packet_needs_two_units():
    pkt = H265AggregationPacket()
    with pytest.raises(ShortPacketError):
        pkt.unmarshal(_hdr(48) + b"\x00\x02\xaa\xbb")
    assert pkt.first_unit is None
    with pytest.raises(ShortPacketError):
        H265AggregationPacket().unmarshal(_hdr(48) + b"\x00\x05\xaa")


def test_fragmentation_unit_packet():
    pkt = H265FragmentationUnitPacket()
    pkt.unmarshal(_hdr(49) + bytes((0x80 | 19,)) + b"\x01\x02")
    assert pkt.fu_header.s() is True
    assert pkt.fu_header.fu_type() == 19
    assert pkt.payload == b"\x01\x02"
    assert pkt.donl is None


def test_fragmentation_unit_donl_only_on_start():
    start = H265FragmentationUnitPacket(might_need_donl=True)
    start.unmarshal(_hdr(49) + b"\x93\x00\x09\xff")
    assert start.donl == 9
    assert start.payload == b"\xff"

    middle = H265FragmentationUnitPacket(might_need_donl=True)
    middle.unmarshal(_hdr(49) + b"\x13\x00\x09\xff")
    assert middle.donl is None
    assert middle.payload == b"\x00\x09\xff"

    with pytest.raises(ShortPacketError):
        H265FragmentationUnitPacket(might_need_donl=True).unmarshal(
            _hdr(49) + b"\x93\x00\x09"
        )


def _paci_fields(a, c_type, phs, f0):
    return (int(a) << 15) | (c_type << 9) | (phs << 4) | (int(f0) << 3)


def test_paci_packet():
    fields = _paci_fields(True, 19, 3, True)
    phes = b"\x21\x80\x00"
    data = _hdr(50) + fields.to_bytes(2, "big") + phes + b"\x26\x01\xaa"
    pkt = H265PACIPacket()
    pkt.unmarshal(data)
    assert pkt.a() is True
    assert pkt.c_type() == 19
    assert pkt.phs_size() == 3
    assert pkt.f0() is True
    assert (pkt.f1(), pkt.f2(), pkt.y()) == (False, False, False)
    assert pkt.phes == phes
    assert pkt.payload == b"\x26\x01\xaa"
    tsci = pkt.tsci()
    assert tsci.irap_pic_id() == phes[0]
    assert tsci.s() is True


def test_paci_without_extension():
    fields = _paci_fields(False, 1, 0, False)
    pkt = H265PACIPacket()
    pkt.unmarshal(_hdr(50) + fields.to_bytes(2, "big") + b"\x02\x01")
    assert pkt.phes == b""
    assert pkt.payload == b"\x02\x01"
    assert pkt.tsci() is None


def test_paci_short_resets_fields():
    fields = _paci_fields(True, 19, 3, True)
    pkt = H265PACIPacket()
    with pytest.raises(ShortPacketError):
        pkt.unmarshal(_hdr(50) + fields.to_bytes(2, "big") + b"\x01\x02\x03")
    assert pkt.paci_header_fields == 0


@pytest.mark.parametrize(
    "data,expected_cls",
    [
        (_hdr(1) + b"\xaa", H265SingleNALUnitPacket),
        (_hdr(48) + b"\x00\x01\xaa\x00\x01\xbb", H265AggregationPacket),
        (_hdr(49) + b"\x80\xaa", H265FragmentationUnitPacket),
        (_hdr(50) + b"\x00\x00\xaa", H265PACIPacket),
    ],
)
def test_packet_dispatch(data, expected_cls):
    pkt = H265Packet()
    assert pkt.unmarshal(data) == b""
    assert isinstance(pkt.packet, expected_cls)


def test_packet_passes_donl_setting():
    pkt = H265Packet(might_need_donl=True)
    pkt.unmarshal(_hdr(1) + b"\x00\x04\xaa")
    assert pkt.packet.donl == 4
    assert pkt.packet.payload == b"\xaa"


def test_packet_errors_propagate():
    with pytest.raises(NilPacketError):
        H265Packet().unmarshal(None)
    with pytest.raises(ShortPacketError):
        H265Packet().unmarshal(_hdr(1))
    with pytest.raises(H265CorruptedPacketError):
        H265Packet().unmarshal(b"\x80\x01\x00")
    with pytest.raises(ShortPacketError):
        H265Packet().unmarshal(_hdr(48) + b"\x00")


def test_is_partition_head():
    pkt = H265Packet()
    assert pkt.is_partition_head(None) is False
    assert pkt.is_partition_head(_hdr(1)) is False
    assert pkt.is_partition_head(_hdr(49) + b"\x80") is True
    assert pkt.is_partition_head(_hdr(49) + b"\x40") is False
    assert pkt.is_partition_head(_hdr(1) + b"\x00") is True


def test_is_partition_tail_follows_marker():
    pkt = H265Packet()
    assert pkt.is_partition_tail(True, b"") is True
    assert pkt.is_partition_tail(False, b"\x00") is False