"""Interfaces shared by RTP payload depacketizers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar


class Depacketizer(ABC):
    """Removes RTP specific data from a payload."""

    @abstractmethod
    def unmarshal(self, packet: bytes) -> bytes:
        """Parse a payload and return the media data it carries."""

    @abstractmethod
    def is_partition_head(self, payload: bytes) -> bool:
        """Whether the payload starts a partition; False when this cannot be told."""

    @abstractmethod
    def is_partition_tail(self, marker: bool, payload: bytes) -> bool:
        """Whether the payload ends a partition; False when this cannot be told."""


class AudioDepacketizer(Depacketizer, ABC):
    """Base for audio codecs: every packet is a whole partition."""

    _packet_is_whole_partition: ClassVar[bool] = True

    def is_partition_head(self, payload: bytes) -> bool:
        """Every audio packet starts a partition of its own."""
        return self._packet_is_whole_partition

    def is_partition_tail(self, marker: bool, payload: bytes) -> bool:
        """Every audio packet ends the partition it started."""
        return self._packet_is_whole_partition


class VideoDepacketizer(Depacketizer, ABC):
    """Base for video codecs: the RTP marker bit ends a partition."""

    def is_partition_tail(self, marker: bool, payload: bytes) -> bool:
        """A partition ends on the packet that carries the marker bit."""
        return bool(marker)