"""Settings and cloud configuration ports backed by pydantic-settings."""

from __future__ import annotations

from typing import Callable

from proseflow.core.config import AppSettings
from proseflow.models.settings import CloudProviderConfiguration, ProviderSettings


class EnvSettingsProvider:
    """ISettingsProvider that re-reads the environment on every call."""

    def __init__(self, factory: Callable[[], AppSettings] = AppSettings) -> None:
        self._factory = factory

    def get_provider_settings(self) -> ProviderSettings:
        return self._factory().provider_settings()


class SettingsCloudConfigStore:
    """ICloudConfigStore reading ``PROSEFLOW_CLOUD_PROVIDERS`` on every call."""

    def __init__(self, factory: Callable[[], AppSettings] = AppSettings) -> None:
        self._factory = factory

    def list_configurations(self) -> list[CloudProviderConfiguration]:
        return list(self._factory().cloud.providers)
