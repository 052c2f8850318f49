from __future__ import annotations

from pathlib import Path

import pytest

from mylama_client.common.config import DEFAULT_CONFIG_PATH, ConfigResolver, load_config
from mylama_client.common.errors import ConfigError
from mylama_client.common.schema import ClientConfig


def test_defaults_fill_missing_keys(write_config) -> None:
    cfg = load_config(write_config({"baseURL": "http://localhost:11434"}))

    assert cfg.base_url == "http://localhost:11434"
    assert cfg.endpoint == "/api/generate"
    assert cfg.timeout_ms == 60000
    assert dict(cfg.default_headers) == {"Content-Type": "application/json"}
    assert cfg.url == "http://localhost:11434/api/generate"


def test_override_replaces_keys_and_inherits_headers(write_config) -> None:
    path = write_config({
        "baseURL": "http://a.test",
        "timeoutMs": 1000,
        "defaultHeaders": {"Content-Type": "application/json", "X-Trace": "1"},
    })
    cfg = load_config(path, {"baseURL": "http://b.test/", "timeoutMs": 2500})

    assert cfg.url == "http://b.test/api/generate"
    assert cfg.timeout_s == 2.5
    assert dict(cfg.default_headers) == {"Content-Type": "application/json", "X-Trace": "1"}


def test_header_override_is_not_deep_merged(write_config) -> None:
    path = write_config({"baseURL": "http://a.test", "defaultHeaders": {"X-Trace": "1"}})
    cfg = load_config(path, {"defaultHeaders": {"Accept": "application/x-ndjson"}})

    assert dict(cfg.default_headers) == {"Accept": "application/x-ndjson"}


def test_config_is_read_only(write_config) -> None:
    cfg = load_config(write_config({"baseURL": "http://a.test"}))
    with pytest.raises(AttributeError):
        cfg.base_url = "http://other.test"  # type: ignore[misc]
    with pytest.raises(TypeError):
        cfg.default_headers["X-New"] = "1"  # type: ignore[index]


def test_models_are_informational(write_config) -> None:
    cfg = load_config(write_config({"baseURL": "http://a.test", "models": ["llama3", "mistral"]}))
    assert cfg.models == ("llama3", "mistral")


def test_yaml_config(write_config) -> None:
    path = write_config("baseURL: http://yaml.test\nendpoint: /api/generate\ntimeoutMs: 3000\n", name="cfg.yaml")
    cfg = load_config(path)

    assert cfg.url == "http://yaml.test/api/generate"
    assert cfg.timeout_ms == 3000


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.json")


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"just a string"'])
def test_malformed_file_raises(write_config, raw: str) -> None:
    with pytest.raises(ConfigError):
        load_config(write_config(raw))


@pytest.mark.parametrize(
    "data",
    [
        {"endpoint": "/api/generate"},
        {"baseURL": ""},
        {"baseURL": 42},
        {"baseURL": "http://a.test", "timeoutMs": 0},
        {"baseURL": "http://a.test", "timeoutMs": "fast"},
        {"baseURL": "http://a.test", "defaultHeaders": {"X-Num": 1}},
    ],
)
def test_invalid_values_raise(write_config, data: dict) -> None:
    with pytest.raises(ConfigError):
        load_config(write_config(data))


def test_unknown_override_keys_are_ignored(write_config, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="mylama.config"):
        cfg = load_config(write_config({"baseURL": "http://a.test"}), {"retries": 3})

    assert cfg.base_url == "http://a.test"
    assert "retries" in caplog.text


def test_resolver_uses_explicit_default_path(write_config) -> None:
    path = write_config({"baseURL": "http://default.test"})
    resolver = ConfigResolver(default_path=path)

    assert resolver.resolve().base_url == "http://default.test"


def test_packaged_default_config_loads() -> None:
    cfg = load_config(DEFAULT_CONFIG_PATH)
    assert cfg.url == "http://localhost:11434/api/generate"


def test_non_utf8_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "mylama.config.json"
    path.write_bytes(b'{"baseURL": "http://a.test\xff"}')

    with pytest.raises(ConfigError, match="Malformed"):
        load_config(path)


@pytest.mark.parametrize("kwargs", [{"base_url": ""}, {"base_url": "http://a.test", "timeout_ms": 0}, {"base_url": "http://a.test", "timeout_ms": -5}])
def test_client_config_rejects_invalid_values(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        ClientConfig(**kwargs)
