"""FastAPI relay in front of the inference server.

Endpoints:
- GET /health
- POST /generate  { "model": "...", "prompt": "...", "max_tokens": 256, "stream": false }

Run with ``uvicorn mylama_client.serve.relay_app:app``.
"""
from __future__ import annotations
import os
import time
import logging
from typing import Generator, Iterator

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from mylama_client.client.generation import GenerationClient
from mylama_client.common.errors import ConfigError, InvalidArgument, ProtocolError, TransportError
from mylama_client.common.logging_setup import setup_logging

LOGGER = logging.getLogger("mylama.relay.app")
setup_logging(os.getenv("MYLAMA_LOG_LEVEL", "INFO"))

CONFIG_PATH = os.getenv("MYLAMA_CONFIG_PATH")

_client: GenerationClient | None = None


class GenerateIn(BaseModel):
    model: str
    prompt: str
    max_tokens: int = 256
    stream: bool = False


class GenerateOut(BaseModel):
    text: str
    latency_ms: int


def get_client() -> GenerationClient:
    """Build the shared client on first use."""
    global _client
    if _client is None:
        _client = GenerationClient(CONFIG_PATH)
    return _client


app = FastAPI()


@app.on_event("startup")
def _validate_config_on_startup() -> None:
    """Resolve configuration once on startup and warn if it is unusable."""
    try:
        client = get_client()
        LOGGER.info("Relaying generate calls to %s", client.config.url)
    except ConfigError as e:
        LOGGER.warning("Failed to load client config: %s", e)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "endpoint": get_client().config.url}


def _relay(first: str | None, fragments: Generator[str, None, None]) -> Iterator[str]:
    try:
        if first is not None:
            yield first
        yield from fragments
    except TransportError as e:
        # Headers are already sent; all we can do is end the body early.
        LOGGER.error("Upstream stream failed: %s", e)
    finally:
        fragments.close()


@app.post("/generate", response_model=None)
def generate(body: GenerateIn) -> GenerateOut | StreamingResponse:
    client = get_client()
    start = time.time()
    try:
        result = client.generate(body.model, body.prompt, body.max_tokens, stream=body.stream)
        if body.stream:
            # Pull the first fragment here so upstream failures still map to an error status.
            first = next(result, None)
            return StreamingResponse(_relay(first, result), media_type="text/plain; charset=utf-8")
    except InvalidArgument as e:
        raise HTTPException(status_code=422, detail=str(e))
    except TransportError as e:
        LOGGER.error("Upstream request failed: %s", e)
        raise HTTPException(status_code=502, detail="Upstream inference error")
    except ProtocolError as e:
        LOGGER.error("Malformed response: %s", e)
        raise HTTPException(status_code=502, detail="Malformed upstream response")

    latency = int((time.time() - start) * 1000)
    return GenerateOut(text=result, latency_ms=latency)
