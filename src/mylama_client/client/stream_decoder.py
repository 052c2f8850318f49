"""Incremental decoder for newline-delimited JSON generation streams.

The server answers a streaming generate call with one JSON object per line::

    {"response": "Hel", "done": false}
    {"response": "lo", "done": false}
    {"done": true, "eval_count": 2}

Chunks arriving from the connection split those lines at arbitrary byte
offsets, so the decoder keeps the undecoded tail in a buffer and only
parses complete lines. Lines that fail to parse are dropped rather than
aborting the stream; ``dropped_lines`` and ``on_drop`` make those drops
visible.
"""
from __future__ import annotations
import codecs
import json
import logging
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Iterable, Iterator

LOGGER = logging.getLogger("mylama.stream")


class DecoderState(str, Enum):
    AWAITING_CONNECTION = "awaiting_connection"
    STREAMING = "streaming"
    DRAINING = "draining"
    TERMINATED = "terminated"


class StreamDecoder:
    """
    State machine turning byte chunks into text fragments.

    Args:
        on_drop: Called with every non-empty line that could not be parsed as JSON.
    """

    def __init__(self, on_drop: Callable[[str], None] | None = None) -> None:
        self.state = DecoderState.AWAITING_CONNECTION
        self.buffer = ""
        self.dropped_lines = 0
        self._on_drop = on_drop
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def terminated(self) -> bool:
        return self.state is DecoderState.TERMINATED

    def feed(self, chunk: bytes) -> list[str]:
        """
        Consume one chunk from the connection.

        Returns:
            Fragments completed by this chunk, in arrival order. Empty once terminated.
        """
        if self.terminated or not chunk:
            return []
        self.state = DecoderState.STREAMING
        self.buffer += self._utf8.decode(chunk)

        fragments: list[str] = []
        while not self.terminated:
            idx = self.buffer.find("\n")
            if idx < 0:
                break
            line = self.buffer[:idx].strip()
            self.buffer = self.buffer[idx + 1:]
            if not line:
                continue
            obj = self._parse(line)
            if obj is None:
                continue
            fragment = _fragment_of(obj)
            if fragment:
                fragments.append(fragment)
            if obj.get("done"):
                self._terminate()
        return fragments

    def finish(self) -> list[str]:
        """
        Signal end of input and drain whatever is left in the buffer.

        Returns:
            At most one fragment, decoded from an unterminated final line.
        """
        if self.terminated:
            return []
        self.buffer += self._utf8.decode(b"", final=True)
        residue = self.buffer.strip()
        fragments: list[str] = []
        if residue:
            self.state = DecoderState.DRAINING
            obj = self._parse(residue)
            if obj is not None:
                fragment = _fragment_of(obj)
                if fragment:
                    fragments.append(fragment)
        self._terminate()
        return fragments

    def _parse(self, line: str) -> dict[str, Any] | None:
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            self.dropped_lines += 1
            LOGGER.debug("Dropping malformed stream line (%d so far): %.80r", self.dropped_lines, line)
            if self._on_drop is not None:
                self._on_drop(line)
            return None
        if not isinstance(obj, dict):
            LOGGER.debug("Ignoring non-object stream line: %.80r", line)
            return None
        return obj

    def _terminate(self) -> None:
        self.state = DecoderState.TERMINATED
        self.buffer = ""


def _fragment_of(obj: dict[str, Any]) -> str | None:
    text = obj.get("response")
    if isinstance(text, str) and text:
        return text
    return None


def iter_fragments(chunks: Iterable[bytes], decoder: StreamDecoder | None = None) -> Iterator[str]:
    """Drive a decoder over byte chunks, stopping at the done sentinel or end of input."""
    decoder = decoder or StreamDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.terminated:
            return
    yield from decoder.finish()


async def aiter_fragments(chunks: AsyncIterable[bytes], decoder: StreamDecoder | None = None) -> AsyncIterator[str]:
    """Async counterpart of :func:`iter_fragments`."""
    decoder = decoder or StreamDecoder()
    async for chunk in chunks:
        for fragment in decoder.feed(chunk):
            yield fragment
        if decoder.terminated:
            return
    for fragment in decoder.finish():
        yield fragment
