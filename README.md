# rtpmedia

Pure-Python building blocks for carrying audio and video in RTP payloads.
It has no dependencies outside the standard library.

## What is in it

| Module | Contents |
| --- | --- |
| `rtpmedia.abs_send_time` | `AbsSendTimeExtension`, `to_ntp_time`, `from_ntp_time` |
| `rtpmedia.abs_capture_time` | `AbsCaptureTimeExtension` |
| `rtpmedia.audio_level` | `AudioLevelExtension` |
| `rtpmedia.audio` | `G711Payloader`, `G722Payloader`, `OpusPayloader`, `OpusPacket` |
| `rtpmedia.av1` | `AV1Payloader`, `AV1Packet`, `AV1FrameAssembler` |
| `rtpmedia.h264` | `H264Payloader`, `H264Packet`, `emit_nalus` |
| `rtpmedia.h265` | `H265Packet` and the packet forms it parses into (`H265SingleNALUnitPacket`, `H265AggregationPacket`, `H265FragmentationUnitPacket`, `H265PACIPacket`), plus `H265NALUHeader`, `H265FragmentationUnitHeader`, `H265TSCI` |
| `rtpmedia.h265_payloader` | `H265Payloader` |
| `rtpmedia.vp8` | `VP8Payloader`, `VP8Packet` |
| `rtpmedia.vp9` | `VP9Payloader`, `VP9Packet` |
| `rtpmedia.leb128` | `encode_leb128`, `decode_leb128`, `read_leb128`, `write_leb128` |
| `rtpmedia.depacketizer` | the `Depacketizer` base class, with `AudioDepacketizer` and `VideoDepacketizer` |
| `rtpmedia.errors` | `RTPError` and its subclasses |

### Header extensions

Each extension is a dataclass with `marshal()` returning the extension
payload bytes and a class method `unmarshal(raw_data)` building one from
them. Times are integer nanoseconds since the Unix epoch.

- `AbsSendTimeExtension(timestamp)`: `from_send_time(send_ns)` builds one;
  `estimate(receive_ns)` recovers the full send time from the receive time
  (wrong if the delay exceeds 64 seconds).
- `AbsCaptureTimeExtension(timestamp, estimated_capture_clock_offset)`:
  `from_capture_time(capture_ns, clock_offset_ns=None)` builds one;
  `capture_time()` and `estimated_capture_clock_offset_ns()` read it back
  (the latter returns `None` when there is no offset).
- `AudioLevelExtension(level, voice)`: `marshal()` raises
  `AudioLevelOverflowError` when `level` is above 127.

### Payloaders

Every payloader has `payload(mtu, payload)` returning a list of `bytes`
payloads, each at most `mtu` bytes long.

- `G711Payloader`, `G722Payloader`: split the samples into MTU-sized chunks.
- `OpusPayloader`: returns the packet whole as one payload; the MTU is ignored.
- `H264Payloader`: takes an Annex B stream, drops AUD and filler units,
  holds back SPS and PPS and sends them as a STAP-A before the next unit,
  and splits units larger than the MTU into FU-A fragments.
- `H265Payloader(add_donl=False, skip_aggregation=False)`: takes an Annex B
  stream, gathers small units into aggregation packets (unless
  `skip_aggregation`), splits large ones into fragmentation units, and
  writes decoding order numbers when `add_donl` is set.
- `VP8Payloader(enable_picture_id=False, picture_id=0)`: writes a VP8
  payload descriptor, with a picture ID when enabled and non-zero; the
  picture ID advances after each frame.
- `VP9Payloader(initial_picture_id_fn=None)`: flexible mode descriptor with a
  15-bit picture ID; the first ID comes from `initial_picture_id_fn`, or at
  random when none is given.
- `AV1Payloader`: holds back a sequence header OBU and sends it together
  with the next OBU; raises `ValueError` if the MTU is too small for any data.

### Depacketizers

- `H264Packet(is_avc=False)`: `unmarshal(payload)` returns the NAL units the
  payload completes, with Annex B start codes or, when `is_avc` is set,
  four-byte length prefixes. FU-A fragments are buffered; until the last
  fragment arrives `b""` is returned.
- `H265Packet(might_need_donl=False)`: `unmarshal(payload)` parses the
  payload into `packet` (one of the four packet forms) and returns `b""`.
- `VP8Packet`, `VP9Packet`: `unmarshal(payload)` fills in the descriptor
  fields and returns the codec data after it.
- `OpusPacket`: `unmarshal(packet)` stores and returns the data.
- `AV1Packet`: `unmarshal(payload)` fills in `z`, `y`, `w`, `n` and
  `obu_elements`; `AV1FrameAssembler().read_frames(packet)` joins OBU
  fragments across packets and returns the OBUs each packet completes.

All depacketizers answer `is_partition_head(payload)` and
`is_partition_tail(marker, payload)`. Audio packets are always both head and
tail; for video the marker bit marks the tail.

## Examples

Packetize an H.264 Annex B access unit and parse it back:

```python
from rtpmedia.h264 import H264Payloader, H264Packet

annexb_bytes = b"\x00\x00\x00\x01\x65" + bytes(3000)

payloads = H264Payloader().payload(1200, annexb_bytes)

depacketizer = H264Packet()
stream = b"".join(depacketizer.unmarshal(p) for p in payloads)
assert stream == annexb_bytes
```

Round-trip an audio level extension:

```python
from rtpmedia.audio_level import AudioLevelExtension

raw = AudioLevelExtension(level=8, voice=True).marshal()   # b"\x88"
ext = AudioLevelExtension.unmarshal(raw)
```

Estimate a send time from an abs-send-time extension:

```python
import time
from rtpmedia.abs_send_time import AbsSendTimeExtension

ext = AbsSendTimeExtension.from_send_time(time.time_ns())
estimated_ns = AbsSendTimeExtension.unmarshal(ext.marshal()).estimate(time.time_ns())
```

Rebuild AV1 OBUs:

```python
from rtpmedia.av1 import AV1FrameAssembler, AV1Packet, AV1Payloader

obu = bytes(range(11)) * 300
assembler = AV1FrameAssembler()
for payload in AV1Payloader().payload(1500, obu):
    packet = AV1Packet()
    packet.unmarshal(payload)
    for frame in assembler.read_frames(packet):
        assert frame == obu
```

Malformed input raises a subclass of `rtpmedia.errors.RTPError` (itself a
`ValueError`), such as `ShortPacketError`, `NilPacketError` or
`BufferTooSmallError`.

## What it does not do

The package works on RTP payloads and on header extension payloads only. It
does not parse or build the RTP fixed header, the header extension block
that holds the extensions, or whole RTP packets, and it does no network I/O.

## Running the tests

```
pip install -e .[test]
pytest
```