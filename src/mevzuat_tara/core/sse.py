from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator

import orjson

FRAME_SEPARATOR = "\n\n"
EVENT_PREFIX = "event:"
DATA_PREFIX = "data:"


@dataclass(frozen=True)
class Frame:
    event: str
    data: str


def parse_block(block: str) -> Frame | None:
    event: str | None = None
    data: str | None = None
    for line in block.split("\n"):
        if event is None and line.startswith(EVENT_PREFIX):
            event = line[len(EVENT_PREFIX):].strip()
        elif data is None and line.startswith(DATA_PREFIX):
            data = line[len(DATA_PREFIX):].strip()
    if not event:
        return None
    return Frame(event=event, data=data or "")


class FrameDecoder:
    """Incremental decoder for ``event:``/``data:`` frames separated by blank lines.

    Chunks may be cut anywhere, including inside a multi-byte character or
    between the two newlines of a separator; the emitted frame sequence only
    depends on the concatenated stream. A trailing partial frame stays in the
    buffer until its separator arrives.
    """

    def __init__(self) -> None:
        self.buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: str | bytes) -> list[Frame]:
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self.buffer = (self.buffer + chunk).replace("\r\n", "\n")
        *blocks, self.buffer = self.buffer.split(FRAME_SEPARATOR)
        frames: list[Frame] = []
        for block in blocks:
            frame = parse_block(block)
            if frame is not None:
                frames.append(frame)
        return frames

    @property
    def pending(self) -> str:
        return self.buffer


def frame_message(data: str, fallback: str) -> str:
    """Message carried by an ``error`` frame: JSON string, JSON object field, or raw text."""
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError:
        return data or fallback
    if isinstance(payload, str):
        return payload or fallback
    if isinstance(payload, dict):
        for key in ("detail", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


async def iter_frames(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[Frame]:
    decoder = FrameDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
