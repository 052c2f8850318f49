from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterator, Iterator

import httpx
import pytest

from mylama_client.common.schema import ClientConfig


class ChunkStream(httpx.SyncByteStream):
    """Response body delivered chunk by chunk; records how far it was read and whether it was closed."""

    def __init__(self, chunks: list[bytes], fail_after: int | None = None) -> None:
        self.chunks = chunks
        self.fail_after = fail_after
        self.sent = 0
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self.chunks:
            if self.fail_after is not None and self.sent >= self.fail_after:
                raise httpx.ReadError("connection reset")
            self.sent += 1
            yield chunk

    def close(self) -> None:
        self.closed = True


class AsyncChunkStream(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks
        self.sent = 0
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            self.sent += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(base_url="http://inference.test")


@pytest.fixture
def write_config(tmp_path: Path):
    def _write(data: Any, name: str = "mylama.config.json") -> Path:
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return path

    return _write
