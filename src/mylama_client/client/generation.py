"""Synchronous client for the generate endpoint of an Ollama-style inference server.

Buffered mode:

    client = GenerationClient()
    text = client.generate("llama3", "Hello, world!", 100)

Streaming mode returns a lazy iterator; breaking out of the loop closes the
underlying HTTP response:

    for fragment in client.generate("llama3", "Hello, world!", 100, stream=True):
        print(fragment, end="", flush=True)
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

import httpx
from pydantic import ValidationError

from mylama_client.client.stream_decoder import StreamDecoder, iter_fragments
from mylama_client.common.config import ConfigResolver
from mylama_client.common.errors import InvalidArgument, TransportError
from mylama_client.common.schema import ClientConfig, GenerationRequest, parse_reply

LOGGER = logging.getLogger("mylama.client")


def build_request(model: str, prompt: str, max_tokens: int, stream: bool) -> GenerationRequest:
    """Validate call arguments; raises InvalidArgument before any network activity."""
    if not model or not prompt:
        raise InvalidArgument("model and prompt are required.")
    try:
        return GenerationRequest(model=model, prompt=prompt, stream=stream, max_tokens=max_tokens)
    except ValidationError as e:
        raise InvalidArgument(f"Invalid generate arguments: {e}") from e


def decode_body(response: httpx.Response) -> Any:
    """JSON body of an already-read response, or its text when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


def ensure_success(response: httpx.Response) -> None:
    """
    Raise TransportError for statuses outside [200, 300).

    The response body must already be read.
    """
    if 200 <= response.status_code < 300:
        return
    body = json.dumps(decode_body(response), ensure_ascii=False)
    err = TransportError.from_status(response.status_code, body)
    LOGGER.warning("Generate call failed: %s", err)
    raise err


class GenerationClient:
    """
    Client bound to one resolved configuration.

    Args:
        config_path: Config file to read; the resolver's default path when omitted.
        override: Config keys replacing the file's values.
        config: Pre-resolved configuration; skips file loading entirely.
        transport: httpx transport to send requests through (tests use httpx.MockTransport).
        on_drop: Called with every malformed stream line that gets discarded.
        resolver: Resolver used when ``config`` is not given.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        override: Mapping[str, Any] | None = None,
        *,
        config: ClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        on_drop: Callable[[str], None] | None = None,
        resolver: ConfigResolver | None = None,
    ) -> None:
        if config is None:
            config = (resolver or ConfigResolver()).resolve(config_path, override)
        self.config = config
        self._transport = transport
        self._on_drop = on_drop

    def _http(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.config.timeout_s,
            headers=dict(self.config.default_headers),
            transport=self._transport,
        )

    def generate(self, model: str, prompt: str, max_tokens: int = 256, stream: bool = False) -> str | Iterator[str]:
        """
        Request a completion.

        Args:
            model: Model identifier known to the server.
            prompt: Prompt text.
            max_tokens: Token allowance, sent as ``num_predict``.
            stream: Return a lazy iterator of fragments instead of the whole text.

        Raises:
            InvalidArgument: empty model or prompt (raised here even when streaming).
            TransportError: non-2xx status or no response.
            ProtocolError: buffered body of unexpected shape.
        """
        request = build_request(model, prompt, max_tokens, stream)
        if stream:
            return self._stream(request)
        return self._complete(request)

    def _complete(self, request: GenerationRequest) -> str:
        try:
            with self._http() as client:
                r = client.post(self.config.url, json=request.to_wire())
        except httpx.RequestError as e:
            LOGGER.error("Generate request to %s failed: %s", self.config.url, e)
            raise TransportError.no_response() from e
        ensure_success(r)
        return parse_reply(decode_body(r))

    def _stream(self, request: GenerationRequest) -> Iterator[str]:
        decoder = StreamDecoder(on_drop=self._on_drop)
        with self._http() as client:
            try:
                r = client.send(client.build_request("POST", self.config.url, json=request.to_wire()), stream=True)
            except httpx.RequestError as e:
                LOGGER.error("Streaming request to %s failed: %s", self.config.url, e)
                raise TransportError.no_response() from e
            try:
                if not 200 <= r.status_code < 300:
                    r.read()
                    ensure_success(r)
                yield from iter_fragments(r.iter_bytes(), decoder)
            except httpx.RequestError as e:
                LOGGER.error("Stream from %s interrupted: %s", self.config.url, e)
                raise TransportError(f"Stream interrupted: {e}", status_code=r.status_code) from e
            finally:
                r.close()
                LOGGER.debug(
                    "Stream closed in state %s; dropped %d malformed line(s)",
                    decoder.state.value,
                    decoder.dropped_lines,
                )
