"""RTP header extension payloads and codec payloaders and depacketizers."""

__version__ = "0.1.0"