"""Provider settings snapshot handed to the core on every execution."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from proseflow.models.chat import CloudProviderType

NO_FALLBACK = "None"


class CloudProviderConfiguration(BaseModel):
    """One user-configured cloud endpoint in the ordered cloud chain."""

    name: str
    provider_type: CloudProviderType = CloudProviderType.OPENAI
    enabled: bool = True
    api_key: str = ""
    base_url: str = ""
    model: str = ""
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    sort_order: int = 0


class ProviderSettings(BaseModel):
    """Read-only snapshot of routing and local decoding parameters."""

    primary_service_type: str = "Cloud"
    fallback_service_type: str = NO_FALLBACK

    local_model_path: str = ""
    local_cpu_cores: int = 4
    local_context_size: int = 4096
    local_max_tokens: int = 2048
    local_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    prefer_gpu: bool = True
    local_auto_unload_enabled: bool = True
    local_idle_timeout_minutes: float = 30
    local_memory_map: bool = True
    local_memory_lock: bool = False
    local_flash_attention: bool = True

    @property
    def has_fallback(self) -> bool:
        return self.fallback_service_type.strip().lower() != NO_FALLBACK.lower()

    @property
    def local_model_label(self) -> str:
        return Path(self.local_model_path).stem if self.local_model_path else ""
