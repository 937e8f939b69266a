"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

import json

from proseflow.core.config import AppSettings, LocalModelConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.history_backend == "memory"
    assert settings.usage_backend == "memory"
    assert settings.routing.primary_service_type == "Cloud"


def test_local_config_defaults():
    config = LocalModelConfig()
    assert config.context_size == 4096
    assert config.max_tokens == 2048
    assert config.auto_unload_enabled is True
    assert config.idle_timeout_minutes == 30


def test_grouped_env_prefixes(monkeypatch):
    monkeypatch.setenv("PROSEFLOW_LOCAL_CPU_CORES", "8")
    monkeypatch.setenv("PROSEFLOW_REDIS_PORT", "6380")
    monkeypatch.setenv("PROSEFLOW_CLOUD_PROVIDERS", json.dumps([{"name": "groq"}]))

    settings = AppSettings()

    assert settings.local.cpu_cores == 8
    assert settings.redis.port == 6380
    assert settings.cloud.providers[0].name == "groq"


def test_provider_settings_snapshot():
    settings = AppSettings(local=LocalModelConfig(model_path="/m/phi-3.gguf", temperature=0.2))

    snapshot = settings.provider_settings()

    assert snapshot.local_model_path == "/m/phi-3.gguf"
    assert snapshot.local_temperature == 0.2
    assert not snapshot.has_fallback
