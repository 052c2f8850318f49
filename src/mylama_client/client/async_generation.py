"""asyncio flavour of the generation client, built on httpx.AsyncClient."""
from __future__ import annotations
import logging
from contextlib import aclosing
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping

import httpx

from mylama_client.client.generation import build_request, decode_body, ensure_success
from mylama_client.client.stream_decoder import StreamDecoder, aiter_fragments
from mylama_client.common.config import ConfigResolver
from mylama_client.common.errors import TransportError
from mylama_client.common.schema import ClientConfig, GenerationRequest, parse_reply

LOGGER = logging.getLogger("mylama.client.async")


class AsyncGenerationClient:
    """
    Same contract as GenerationClient; ``generate`` returns an awaitable of the
    whole text, or an async iterator of fragments when ``stream`` is true.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        override: Mapping[str, Any] | None = None,
        *,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_drop: Callable[[str], None] | None = None,
        resolver: ConfigResolver | None = None,
    ) -> None:
        if config is None:
            config = (resolver or ConfigResolver()).resolve(config_path, override)
        self.config = config
        self._transport = transport
        self._on_drop = on_drop

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.timeout_s,
            headers=dict(self.config.default_headers),
            transport=self._transport,
        )

    def generate(
        self, model: str, prompt: str, max_tokens: int = 256, stream: bool = False
    ) -> Awaitable[str] | AsyncIterator[str]:
        request = build_request(model, prompt, max_tokens, stream)
        if stream:
            return self._stream(request)
        return self._complete(request)

    async def _complete(self, request: GenerationRequest) -> str:
        try:
            async with self._http() as client:
                r = await client.post(self.config.url, json=request.to_wire())
        except httpx.RequestError as e:
            LOGGER.error("Generate request to %s failed: %s", self.config.url, e)
            raise TransportError.no_response() from e
        ensure_success(r)
        return parse_reply(decode_body(r))

    async def _stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        decoder = StreamDecoder(on_drop=self._on_drop)
        async with self._http() as client:
            try:
                r = await client.send(client.build_request("POST", self.config.url, json=request.to_wire()), stream=True)
            except httpx.RequestError as e:
                LOGGER.error("Streaming request to %s failed: %s", self.config.url, e)
                raise TransportError.no_response() from e
            try:
                if not 200 <= r.status_code < 300:
                    await r.aread()
                    ensure_success(r)
                async with aclosing(aiter_fragments(r.aiter_bytes(), decoder)) as fragments:
                    async for fragment in fragments:
                        yield fragment
            except httpx.RequestError as e:
                LOGGER.error("Stream from %s interrupted: %s", self.config.url, e)
                raise TransportError(f"Stream interrupted: {e}", status_code=r.status_code) from e
            finally:
                await r.aclose()
                LOGGER.debug(
                    "Stream closed in state %s; dropped %d malformed line(s)",
                    decoder.state.value,
                    decoder.dropped_lines,
                )
