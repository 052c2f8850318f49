"""
mylama-client: client for Ollama-style text-generation servers.

Provides:
- Configuration resolution from a JSON/YAML file plus overrides
- Sync and asyncio generation clients with buffered and streaming modes
- Incremental newline-delimited JSON stream decoder
- A command line runner and a FastAPI relay app
"""
from mylama_client.client.async_generation import AsyncGenerationClient
from mylama_client.client.generation import GenerationClient
from mylama_client.client.stream_decoder import DecoderState, StreamDecoder, aiter_fragments, iter_fragments
from mylama_client.common.config import DEFAULT_CONFIG_PATH, ConfigResolver, load_config
from mylama_client.common.errors import ConfigError, InvalidArgument, MyLamaError, ProtocolError, TransportError
from mylama_client.common.schema import ClientConfig, GenerationRequest

__all__ = [
    "AsyncGenerationClient",
    "ClientConfig",
    "ConfigError",
    "ConfigResolver",
    "DEFAULT_CONFIG_PATH",
    "DecoderState",
    "GenerationClient",
    "GenerationRequest",
    "InvalidArgument",
    "MyLamaError",
    "ProtocolError",
    "StreamDecoder",
    "TransportError",
    "aiter_fragments",
    "iter_fragments",
    "load_config",
]
