"""Name-keyed provider registry."""

from __future__ import annotations

from typing import Iterable, Optional

from proseflow.core.protocols import IAiProvider
from proseflow.models.settings import NO_FALLBACK


class ProviderRegistry:
    """Resolves providers by name, case-insensitively.

    ``"None"`` (and the empty string) is reserved to mean "no provider" and
    always resolves to ``None``.
    """

    def __init__(self, providers: Iterable[IAiProvider] = ()) -> None:
        self._providers: dict[str, IAiProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: IAiProvider) -> None:
        key = provider.name.strip().lower()
        if not key or key == NO_FALLBACK.lower():
            raise ValueError(f"Invalid provider name: {provider.name!r}")
        self._providers[key] = provider

    def resolve(self, name: Optional[str]) -> Optional[IAiProvider]:
        if name is None:
            return None
        key = name.strip().lower()
        if not key or key == NO_FALLBACK.lower():
            return None
        return self._providers.get(key)

    def names(self) -> list[str]:
        return [p.name for p in self._providers.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._providers)
