"""ProseFlow exception hierarchy."""

from __future__ import annotations


class ProseFlowError(Exception):
    """Base exception for all ProseFlow errors."""


class InputUnavailableError(ProseFlowError):
    """No text was selected and no override was supplied."""


class ProviderUnavailableError(ProseFlowError):
    """A named provider is not registered or not configured."""

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"Provider {provider_name!r} is not configured")


class ModelUnavailableError(ProseFlowError):
    """The local model is not loaded and could not be loaded on demand."""

    def __init__(self, status: str, reason: str | None = None) -> None:
        self.status = status
        self.reason = reason
        super().__init__(f"Local model is not loaded. Status: {status}. Error: {reason or 'none'}")


class InferenceError(ProseFlowError):
    """The local decode loop failed. The original error is chained as ``__cause__``."""


class PromptBuildError(ProseFlowError):
    """The model's embedded chat template is missing or could not be rendered."""

    def __init__(self, model_label: str) -> None:
        self.model_label = model_label
        super().__init__(
            f"Failed to build prompt: {model_label} model's embedded prompt template "
            "is missing or incorrect."
        )


class CloudProviderError(ProseFlowError):
    """No configured cloud endpoint returned a usable response."""


class AllProvidersFailedError(ProseFlowError):
    """Both the primary and the fallback provider failed (or no fallback exists)."""

    def __init__(self, attempted: list[str]) -> None:
        self.attempted = attempted
        names = ", ".join(attempted) or "none"
        super().__init__(f"All available AI providers failed (attempted: {names})")


class OperationCancelledError(ProseFlowError):
    """Cooperative cancellation was observed."""


class HistoryStoreError(ProseFlowError):
    """History persistence operation failed."""


class UsageStoreError(ProseFlowError):
    """Usage statistic persistence operation failed."""
