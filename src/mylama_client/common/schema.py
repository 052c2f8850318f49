"""Pydantic models and dataclasses for configuration and request/response types."""
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from pydantic import BaseModel, Field, StrictStr, TypeAdapter, ValidationError

from mylama_client.common.errors import ConfigError, ProtocolError

DEFAULT_ENDPOINT = "/api/generate"
DEFAULT_TIMEOUT_MS = 60000
DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType({"Content-Type": "application/json"})


@dataclass(frozen=True)
class ClientConfig:
    """Resolved, read-only request configuration shared by every call of a client."""
    base_url: str
    endpoint: str = DEFAULT_ENDPOINT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_headers: Mapping[str, str] = field(default_factory=lambda: DEFAULT_HEADERS)
    models: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError("baseURL is required")
        if self.timeout_ms <= 0:
            raise ConfigError("timeoutMs must be a positive integer")
        # Freeze the header mapping so callers cannot mutate a shared config.
        object.__setattr__(self, "default_headers", MappingProxyType(dict(self.default_headers)))

    @property
    def url(self) -> str:
        if not self.endpoint:
            return self.base_url
        return self.base_url.rstrip("/") + "/" + self.endpoint.lstrip("/")

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000


class GenerationRequest(BaseModel):
    """One generate call; built per call, never persisted."""
    model: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    stream: bool = False
    max_tokens: int = 256

    def to_wire(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "stream": self.stream,
            "num_predict": self.max_tokens,
        }


class GenerateReply(BaseModel):
    """Object-shaped buffered reply; extra fields (timings, context, ...) are ignored."""
    response: StrictStr


_REPLY_ADAPTER: TypeAdapter[Union[GenerateReply, str]] = TypeAdapter(Union[GenerateReply, StrictStr])


def parse_reply(data: Any) -> str:
    """
    Extract generated text from a decoded buffered reply.

    Args:
        data: Decoded JSON body.

    Returns:
        The ``response`` field of an object reply, or the reply itself when it is a bare string.

    Raises:
        ProtocolError: if the body matches neither shape.
    """
    try:
        reply = _REPLY_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ProtocolError("Unexpected response format in non-streaming mode.") from e
    if isinstance(reply, GenerateReply):
        return reply.response
    return reply
