"""Progress event framing: ``event: <kind>\\ndata: <json>\\n\\n``."""

import json
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, List, Optional

from .._utils import logger
from ..backup.models import ProgressEvent

FRAME_DELIMITER = "\n\n"
STREAM_ENDED_MESSAGE = "Backup stream ended without a result"


def encode_event(event: ProgressEvent) -> str:
    """Frame one event. json.dumps escapes newlines, so data stays on one line."""
    data = json.dumps(event.payload(), separators=(",", ":"))
    return f"event: {event.kind.value}\ndata: {data}{FRAME_DELIMITER}"


@dataclass(frozen=True)
class Frame:
    event: str
    data: str

    def json(self) -> dict:
        return json.loads(self.data)


def parse_frame(text: str) -> Optional[Frame]:
    """Parse one frame; returns None if ``event`` or ``data`` is missing."""
    fields = {}
    for line in text.split("\n"):
        if not line.strip():
            continue
        field_name, sep, value = line.partition(":")
        if not sep:
            continue
        fields[field_name.strip()] = value.strip()

    if not fields.get("event") or not fields.get("data"):
        return None
    return Frame(event=fields["event"], data=fields["data"])


class FrameDecoder:
    """Reassemble frames from arbitrarily split text chunks."""

    def __init__(self):
        self.buffer = ""

    def feed(self, chunk: str) -> List[Frame]:
        """Append chunk and return every frame it completed, in order."""
        self.buffer += chunk
        pieces = self.buffer.split(FRAME_DELIMITER)
        self.buffer = pieces.pop()

        frames = []
        for piece in pieces:
            if not piece.strip():
                continue
            frame = parse_frame(piece)
            if frame is not None:
                frames.append(frame)
        return frames

    def flush(self) -> Optional[Frame]:
        """Parse whatever is left in the buffer at end of stream."""
        remainder, self.buffer = self.buffer, ""
        if not remainder.strip():
            return None
        return parse_frame(remainder)


class ProgressChannel:
    """Server side of the progress protocol.

    Frames events from an orchestrator stream and enforces the ordering
    rule: nothing after the first terminal event, and a synthesized error if
    the source ends without one.
    """

    def __init__(self, events: AsyncIterable[ProgressEvent]):
        self.events = events
        self.closed = False

    async def frames(self) -> AsyncIterator[str]:
        events = self.events.__aiter__()
        try:
            async for event in events:
                yield encode_event(event)
                if event.is_terminal:
                    self.closed = True
                    break
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        if not self.closed:
            logger.error("Progress source ended without a terminal event")
            self.closed = True
            yield encode_event(ProgressEvent.error(message=STREAM_ENDED_MESSAGE))
