"""Exceptions raised while parsing or building RTP payloads and extensions."""


class RTPError(ValueError):
    """Base class for every error raised by this package."""

    default_message = "RTP error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class BufferTooSmallError(RTPError):
    """The buffer is too small to hold the expected data."""

    default_message = "buffer too small"


class AudioLevelOverflowError(RTPError):
    """An audio level does not fit in seven bits."""

    default_message = "audio level overflow"


class ShortPacketError(RTPError):
    """The packet is not large enough for what it declares."""

    default_message = "packet is not large enough"


class NilPacketError(RTPError):
    """No packet was given."""

    default_message = "invalid nil packet"


class TooManyPDiffError(RTPError):
    """A VP9 descriptor carries more reference indices than allowed."""

    default_message = "too many PDiff"


class TooManySpatialLayersError(RTPError):
    """A VP9 descriptor names more spatial layers than allowed."""

    default_message = "too many spatial layers"


class UnhandledNALUTypeError(RTPError):
    """The NAL unit type is not one that can be depacketized."""

    default_message = "NALU Type is unhandled"


class KeyframeAndFragmentError(RTPError):
    """An AV1 aggregation header has both the Z and N bits set."""

    default_message = (
        "bits Z and N are set. Not possible to have OBU be tail fragment and be keyframe"
    )


class H265CorruptedPacketError(RTPError):
    """The forbidden bit of an H.265 NAL unit header is set."""

    default_message = "corrupted h265 packet"


class InvalidH265PacketTypeError(RTPError):
    """The H.265 packet type does not match the expected one."""

    default_message = "invalid h265 packet type"


class LEB128ReadError(RTPError):
    """The buffer ended before a LEB128 value was complete."""

    default_message = "payload ended before LEB128 was finished"