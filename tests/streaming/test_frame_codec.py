"""Tests for progress event framing."""

import json
import random
import pytest

from nano_dbbackup.backup.models import ProgressEvent
from nano_dbbackup.streaming.codec import (
    STREAM_ENDED_MESSAGE,
    FrameDecoder,
    ProgressChannel,
    encode_event,
    parse_frame,
)

PROGRESS_FRAME = 'event: progress\ndata: {"percent":10}\n\n'


def test_encode_progress_event():
    frame = encode_event(ProgressEvent.progress(10, "Starting database backup..."))
    assert frame == 'event: progress\ndata: {"percent":10,"message":"Starting database backup..."}\n\n'


def test_encode_keeps_data_on_one_line():
    frame = encode_event(ProgressEvent.error("line one\nline two"))
    assert frame.count("\n") == 3
    assert json.loads(parse_frame(frame).data)["message"] == "line one\nline two"


def test_parse_frame_strips_whitespace():
    frame = parse_frame("event:  complete \ndata:   {\"name\":\"x\"}  ")
    assert frame.event == "complete"
    assert frame.json() == {"name": "x"}


@pytest.mark.parametrize("text", ["event: progress", 'data: {"percent":1}', "garbage", ""])
def test_parse_frame_requires_both_fields(text):
    assert parse_frame(text) is None


def test_decoder_single_byte_chunks():
    decoder = FrameDecoder()
    frames = []
    for char in PROGRESS_FRAME:
        frames.extend(decoder.feed(char))

    assert len(frames) == 1
    assert frames[0].event == "progress"
    assert frames[0].json() == {"percent": 10}
    assert decoder.flush() is None


@pytest.mark.parametrize("split", range(1, len(PROGRESS_FRAME)))
def test_decoder_every_split_point(split):
    decoder = FrameDecoder()
    frames = decoder.feed(PROGRESS_FRAME[:split]) + decoder.feed(PROGRESS_FRAME[split:])

    assert len(frames) == 1
    assert frames[0].json() == {"percent": 10}


def test_decoder_multiple_frames_in_one_chunk():
    chunk = PROGRESS_FRAME + 'event: complete\ndata: {"name":"x"}\n\n'
    frames = FrameDecoder().feed(chunk)
    assert [f.event for f in frames] == ["progress", "complete"]


def test_decoder_discards_incomplete_frames():
    frames = FrameDecoder().feed('event: progress\n\ndata: {"a":1}\n\n' + PROGRESS_FRAME)
    assert len(frames) == 1
    assert frames[0].event == "progress"


def test_decoder_flushes_trailing_frame():
    decoder = FrameDecoder()
    assert decoder.feed('event: complete\ndata: {"name":"x"}') == []
    frame = decoder.flush()
    assert frame.event == "complete"
    assert decoder.buffer == ""


async def _events(items):
    for item in items:
        yield item


async def _drain(channel):
    return [frame async for frame in channel.frames()]


@pytest.mark.asyncio
async def test_channel_stops_after_terminal_event():
    events = [
        ProgressEvent.progress(2, "a"),
        ProgressEvent.complete("x", "aws", "https://example.com/x"),
        ProgressEvent.progress(99, "late"),
        ProgressEvent.error("late"),
    ]

    frames = await _drain(ProgressChannel(_events(events)))

    assert len(frames) == 2
    assert frames[-1].startswith("event: complete\n")


@pytest.mark.asyncio
async def test_channel_synthesizes_error_when_source_ends_early():
    frames = await _drain(ProgressChannel(_events([ProgressEvent.progress(2, "a")])))

    assert len(frames) == 2
    last = parse_frame(frames[-1])
    assert last.event == "error"
    assert last.json()["message"] == STREAM_ENDED_MESSAGE


@pytest.mark.asyncio
async def test_channel_closes_source():
    closed = []

    async def source():
        try:
            yield ProgressEvent.error("failed")
            yield ProgressEvent.progress(50, "never")
        finally:
            closed.append(True)

    await _drain(ProgressChannel(source()))

    assert closed == [True]


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(20))
async def test_channel_random_sequences_have_one_terminal_frame(seed):
    rng = random.Random(seed)
    events = []
    for _ in range(rng.randint(0, 12)):
        roll = rng.random()
        if roll < 0.7:
            events.append(ProgressEvent.progress(rng.randint(0, 100), "step"))
        elif roll < 0.85:
            events.append(ProgressEvent.complete("x", "aws", "https://example.com/x"))
        else:
            events.append(ProgressEvent.error("failed"))

    frames = await _drain(ProgressChannel(_events(events)))

    decoder = FrameDecoder()
    wire = "".join(frames)
    decoded = []
    position = 0
    while position < len(wire):
        step = rng.randint(1, 7)
        decoded.extend(decoder.feed(wire[position:position + step]))
        position += step

    kinds = [frame.event for frame in decoded]
    assert len(decoded) == len(frames)
    assert sum(1 for kind in kinds if kind in ("complete", "error")) == 1
    assert kinds[-1] in ("complete", "error")
