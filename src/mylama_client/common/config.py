"""Client configuration loading.

The configuration file is a JSON (or YAML) object with the keys
``baseURL``, ``endpoint``, ``timeoutMs``, ``defaultHeaders`` and ``models``.
Overrides use the same keys and replace loaded values wholesale.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from mylama_client.common.errors import ConfigError
from mylama_client.common.schema import (
    DEFAULT_ENDPOINT,
    DEFAULT_HEADERS,
    DEFAULT_TIMEOUT_MS,
    ClientConfig,
)

LOGGER = logging.getLogger("mylama.config")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "mylama.config.json"
KNOWN_KEYS = ("baseURL", "endpoint", "timeoutMs", "defaultHeaders", "models")


def read_config_file(path: str | Path) -> dict[str, Any]:
    """
    Read and decode a configuration file.

    Args:
        path: JSON file, or YAML when the suffix is .yaml/.yml.

    Raises:
        ConfigError: if the file is missing, unreadable or not a mapping.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            loaded = yaml.safe_load(raw)
        else:
            loaded = json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain an object at the top level")
    return loaded


def _check_types(cfg: Mapping[str, Any], origin: str) -> None:
    base_url = cfg.get("baseURL")
    if base_url is not None and not isinstance(base_url, str):
        raise ConfigError(f"{origin}: baseURL must be a string")
    endpoint = cfg.get("endpoint")
    if endpoint is not None and not isinstance(endpoint, str):
        raise ConfigError(f"{origin}: endpoint must be a string")
    timeout = cfg.get("timeoutMs")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int)):
        raise ConfigError(f"{origin}: timeoutMs must be an integer")
    headers = cfg.get("defaultHeaders")
    if headers is not None:
        if not isinstance(headers, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
        ):
            raise ConfigError(f"{origin}: defaultHeaders must map strings to strings")
    models = cfg.get("models")
    if models is not None and not isinstance(models, list):
        raise ConfigError(f"{origin}: models must be a list")


class ConfigResolver:
    """Merges a configuration file with caller overrides into a ClientConfig."""

    def __init__(self, default_path: str | Path = DEFAULT_CONFIG_PATH) -> None:
        self.default_path = Path(default_path)

    def resolve(self, path: str | Path | None = None, override: Mapping[str, Any] | None = None) -> ClientConfig:
        cfg_path = Path(path) if path is not None else self.default_path
        loaded = read_config_file(cfg_path)
        _check_types(loaded, str(cfg_path))

        merged: dict[str, Any] = {
            "baseURL": loaded.get("baseURL"),
            "endpoint": loaded.get("endpoint") if loaded.get("endpoint") is not None else DEFAULT_ENDPOINT,
            "timeoutMs": loaded.get("timeoutMs") if loaded.get("timeoutMs") is not None else DEFAULT_TIMEOUT_MS,
            "defaultHeaders": loaded.get("defaultHeaders") if loaded.get("defaultHeaders") is not None else dict(DEFAULT_HEADERS),
            "models": loaded.get("models") or [],
        }

        if override:
            unknown = sorted(k for k in override if k not in KNOWN_KEYS)
            if unknown:
                LOGGER.warning("Ignoring unknown config override keys: %s", ", ".join(unknown))
            known = {k: v for k, v in override.items() if k in KNOWN_KEYS}
            _check_types(known, "override")
            merged.update(known)

        config = ClientConfig(
            base_url=merged["baseURL"],
            endpoint=merged["endpoint"] if merged["endpoint"] is not None else DEFAULT_ENDPOINT,
            timeout_ms=merged["timeoutMs"],
            default_headers=merged["defaultHeaders"] if merged["defaultHeaders"] is not None else DEFAULT_HEADERS,
            models=tuple(str(m) for m in merged["models"] or ()),
        )
        LOGGER.debug("Resolved config from %s -> %s", cfg_path, config.url)
        return config


def load_config(
    path: str | Path | None = None,
    override: Mapping[str, Any] | None = None,
    default_path: str | Path = DEFAULT_CONFIG_PATH,
) -> ClientConfig:
    """Shortcut for ``ConfigResolver(default_path).resolve(path, override)``."""
    return ConfigResolver(default_path).resolve(path, override)
