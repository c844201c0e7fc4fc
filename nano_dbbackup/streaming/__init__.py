"""Progress event wire protocol: server-side framing and client-side decoding."""

from .client import BackupFailedError, ClientTimeoutError, StreamingClient
from .codec import Frame, FrameDecoder, ProgressChannel, encode_event, parse_frame

__all__ = [
    "BackupFailedError",
    "ClientTimeoutError",
    "Frame",
    "FrameDecoder",
    "ProgressChannel",
    "StreamingClient",
    "encode_event",
    "parse_frame",
]
