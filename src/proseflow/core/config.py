"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from proseflow.models.settings import NO_FALLBACK, CloudProviderConfiguration, ProviderSettings


class LocalModelConfig(BaseSettings):
    """Local (in-process llama.cpp) model configuration."""

    model_config = {"env_prefix": "PROSEFLOW_LOCAL_", "protected_namespaces": ()}

    model_path: str = ""
    cpu_cores: int = 4
    context_size: int = 4096
    max_tokens: int = 2048
    temperature: float = 0.7
    prefer_gpu: bool = True
    load_on_startup: bool = False
    auto_unload_enabled: bool = True
    idle_timeout_minutes: float = 30
    memory_map: bool = True
    memory_lock: bool = False
    flash_attention: bool = True


class ProviderRoutingConfig(BaseSettings):
    """Primary / fallback provider selection."""

    model_config = {"env_prefix": "PROSEFLOW_PROVIDER_"}

    primary_service_type: str = "Cloud"
    fallback_service_type: str = NO_FALLBACK  # "Cloud", "Local" or "None"


class CloudConfig(BaseSettings):
    """Ordered chain of OpenAI-compatible cloud endpoints."""

    model_config = {"env_prefix": "PROSEFLOW_CLOUD_"}

    timeout: float = 60.0
    providers: list[CloudProviderConfiguration] = Field(default_factory=list)  # JSON in env


class DynamoDBConfig(BaseSettings):
    """DynamoDB history table configuration."""

    model_config = {"env_prefix": "PROSEFLOW_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis usage counter configuration."""

    model_config = {"env_prefix": "PROSEFLOW_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "PROSEFLOW_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    history_backend: Literal["memory", "dynamodb"] = "memory"
    usage_backend: Literal["memory", "redis"] = "memory"

    local: LocalModelConfig = Field(default_factory=LocalModelConfig)
    routing: ProviderRoutingConfig = Field(default_factory=ProviderRoutingConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    dynamodb: DynamoDBConfig = Field(default_factory=DynamoDBConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)

    def provider_settings(self) -> ProviderSettings:
        """Flatten routing and local decoding parameters into one snapshot."""
        return ProviderSettings(
            primary_service_type=self.routing.primary_service_type,
            fallback_service_type=self.routing.fallback_service_type,
            local_model_path=self.local.model_path,
            local_cpu_cores=self.local.cpu_cores,
            local_context_size=self.local.context_size,
            local_max_tokens=self.local.max_tokens,
            local_temperature=self.local.temperature,
            prefer_gpu=self.local.prefer_gpu,
            local_auto_unload_enabled=self.local.auto_unload_enabled,
            local_idle_timeout_minutes=self.local.idle_timeout_minutes,
            local_memory_map=self.local.memory_map,
            local_memory_lock=self.local.memory_lock,
            local_flash_attention=self.local.flash_attention,
        )
