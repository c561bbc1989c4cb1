"""The client-to-mixer audio level RTP header extension."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import AudioLevelOverflowError, BufferTooSmallError

AUDIO_LEVEL_EXTENSION_SIZE = 1


@dataclass
class AudioLevelExtension:
    """Audio level in -dBov (0..127) and a voice activity flag."""

    level: int = 0
    voice: bool = False

    def marshal(self) -> bytes:
        """Serialize the extension payload."""
        if self.level > 127:
            raise AudioLevelOverflowError()
        return bytes(((0x80 if self.voice else 0x00) | self.level,))

    @classmethod
    def unmarshal(cls, raw_data: bytes) -> AudioLevelExtension:
        """Parse an extension payload."""
        if len(raw_data) < AUDIO_LEVEL_EXTENSION_SIZE:
            raise BufferTooSmallError()
        return cls(level=raw_data[0] & 0x7F, voice=raw_data[0] & 0x80 != 0)