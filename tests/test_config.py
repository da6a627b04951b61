"""
Tests for configuration loading and the default cascade.
"""

import json

import httpx
import pytest

from modelcascade import (
    CascadeConfig,
    ConfigurationError,
    OllamaTransport,
    OpenAICompatibleTransport,
    build_catalog,
    load_config,
    parse_config,
)
from modelcascade.presets import (
    DEFAULT_OLLAMA_MODELS,
    DEFAULT_REMOTE_MODELS,
    build_default_catalog,
    default_config,
)
from tests.conftest import ok

YAML_CONFIG = """
default_timeout_ms: 20000
global_timeout_ms: 90000
attempts:
  - id: opencode/minimax-m2.1-free
    tier: 0
  - id: openrouter/qwen/qwen3-coder:free
    tier: 1
    timeoutMs: 45000
  - id: ollama/llama3.2
    tier: 2
    enabled: false
"""


class TestParseConfig:
    """Tests for parse_config()."""

    def test_minimal(self):
        config = parse_config({"attempts": [{"id": "m1"}]})
        assert config.default_timeout_ms == 30000
        assert config.global_timeout_ms is None
        assert config.attempts[0].tier == 0
        assert config.attempts[0].enabled is True

    def test_camel_case_aliases(self):
        config = parse_config({
            "defaultTimeoutMs": 1000,
            "globalTimeoutMs": 5000,
            "attempts": [{"id": "m1", "timeoutMs": 250}],
        })
        assert config.default_timeout_ms == 1000
        assert config.global_timeout_ms == 5000
        assert config.attempts[0].timeout_ms == 250

    def test_duplicate_ids(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"attempts": [{"id": "m1"}, {"id": "m1"}]})
        assert any("duplicate attempt id" in e for e in exc_info.value.details["errors"])

    @pytest.mark.parametrize(
        "attempt",
        [
            {"id": ""},
            {"id": "m1", "tier": -1},
            {"id": "m1", "timeout_ms": 0},
            {"id": "m1", "unknown": True},
        ],
    )
    def test_invalid_attempts(self, attempt):
        with pytest.raises(ConfigurationError, match="Invalid cascade configuration"):
            parse_config({"attempts": [attempt]})

    def test_run_options(self):
        config = parse_config({"global_timeout_ms": 5000})
        options = config.run_options(override="m1")
        assert options.global_timeout_ms == 5000
        assert options.override == "m1"

    def test_timeouts(self):
        config = parse_config({"default_timeout_ms": 1000})
        assert config.timeouts.default_attempt_timeout_ms == 1000


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "cascade.yaml"
        path.write_text(YAML_CONFIG)

        config = load_config(path)

        assert config.default_timeout_ms == 20000
        assert config.global_timeout_ms == 90000
        assert [a.id for a in config.attempts] == [
            "opencode/minimax-m2.1-free",
            "openrouter/qwen/qwen3-coder:free",
            "ollama/llama3.2",
        ]
        assert config.attempts[1].timeout_ms == 45000
        assert config.attempts[2].enabled is False

    def test_json(self, tmp_path):
        path = tmp_path / "cascade.json"
        path.write_text(json.dumps({"attempts": [{"id": "m1", "tier": 1}]}))
        assert load_config(path).attempts[0].tier == 1

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "cascade.yml"
        path.write_text("")
        assert load_config(path).attempts == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read config file"):
            load_config(tmp_path / "missing.yaml")

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "cascade.toml"
        path.write_text("")
        with pytest.raises(ConfigurationError, match=".yaml, .yml or .json"):
            load_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "cascade.yaml"
        path.write_text("attempts: [unclosed")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "cascade.yaml"
        path.write_text("- id: m1\n")
        with pytest.raises(ConfigurationError, match="mapping at top level"):
            load_config(path)


class TestBuildCatalog:
    """Tests for build_catalog()."""

    def test_builds_from_config(self, tmp_path):
        path = tmp_path / "cascade.yaml"
        path.write_text(YAML_CONFIG)
        config = load_config(path)
        transports = {a.id: ok() for a in config.attempts}

        catalog = build_catalog(config, transports)

        assert catalog.default_timeout_ms == 20000
        assert catalog.get("opencode/minimax-m2.1-free").timeout_ms == 20000
        assert catalog.get("openrouter/qwen/qwen3-coder:free").timeout_ms == 45000
        assert catalog.enabled_ids() == [
            "opencode/minimax-m2.1-free",
            "openrouter/qwen/qwen3-coder:free",
        ]

    def test_provider_fields_land_in_metadata(self):
        config = parse_config({"attempts": [{"id": "m1", "provider": "ollama", "model": "llama3.2"}]})
        catalog = build_catalog(config, {"m1": ok()})
        assert catalog.get("m1").metadata == {"provider": "ollama", "model": "llama3.2"}

    def test_missing_transport(self):
        config = parse_config({"attempts": [{"id": "m1"}, {"id": "m2"}]})
        with pytest.raises(ConfigurationError, match="'m2' has no transport"):
            build_catalog(config, {"m1": ok()})


class TestPresets:
    """Tests for the default cascade."""

    def test_default_config_order(self):
        config = default_config()
        assert isinstance(config, CascadeConfig)
        assert len(config.attempts) == len(DEFAULT_REMOTE_MODELS) + len(DEFAULT_OLLAMA_MODELS)
        assert config.attempts[0].id == "opencode/minimax-m2.1-free"
        assert config.attempts[-1].id == "ollama/deepseek-coder-v2"

    def test_keyless_providers_disabled(self):
        catalog = build_default_catalog(api_keys={"openrouter": "sk-test"})
        enabled = catalog.enabled_ids()

        assert not any(i.startswith("opencode/") for i in enabled)
        assert not any(i.startswith("zenmux/") for i in enabled)
        assert enabled[0] == "openrouter/kwaipilot/kat-coder-pro:free"
        assert enabled[-3:] == [f"ollama/{m}" for m in DEFAULT_OLLAMA_MODELS]
        assert len(catalog) == 15

    def test_transport_types(self):
        client = httpx.AsyncClient()
        catalog = build_default_catalog(
            api_keys={"opencode": "k"},
            ollama_base_url="http://ollama:11434",
            client=client,
        )
        local = catalog.get("ollama/llama3.2").transport
        remote = catalog.get("opencode/glm-4.7-free").transport

        assert isinstance(local, OllamaTransport)
        assert local.base_url == "http://ollama:11434"
        assert isinstance(remote, OpenAICompatibleTransport)
        assert remote.api_key == "k"
        assert remote.base_url == "https://opencode.ai/zen/v1"

    def test_tiers(self):
        catalog = build_default_catalog(api_keys={"opencode": "a", "openrouter": "b", "zenmux": "c"})
        ordered = catalog.ordered_attempts()
        tiers = [d.tier for d in ordered]
        assert tiers == sorted(tiers)
        assert ordered[0].metadata["provider"] == "opencode"
        assert ordered[-1].metadata["provider"] == "ollama"
