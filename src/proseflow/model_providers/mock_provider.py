"""Mock provider for local development and testing.

Returns canned responses. No real LLM calls.
"""

from __future__ import annotations

from typing import Optional

from proseflow.core.cancellation import CancellationToken
from proseflow.core.exceptions import ProseFlowError
from proseflow.core.types import SessionId
from proseflow.models.chat import AiResponse, ChatMessage, ProviderType


class MockProvider:
    """IAiProvider implementation that returns deterministic mock responses."""

    def __init__(
        self,
        name: str = "Mock",
        default_response: str = "Mock LLM response",
        *,
        provider_type: ProviderType = ProviderType.MOCK,
        label: str = "mock-model",
    ) -> None:
        self.name = name
        self.provider_type = provider_type
        self._default_response = default_response
        self._label = label
        self._canned_responses: dict[str, str] = {}
        self._failure: Exception | None = None
        self.calls: list[list[ChatMessage]] = []
        self.session_ids: list[Optional[SessionId]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def set_response(self, prompt_contains: str, response: str) -> None:
        """Register a canned response for prompts containing a keyword."""
        self._canned_responses[prompt_contains] = response

    def fail_with(self, error: Exception | None = None) -> None:
        """Make every subsequent call raise ``error`` (``None`` restores normal behaviour)."""
        self._failure = error

    def fail(self, message: str = "Mock provider failure") -> None:
        self._failure = ProseFlowError(message)

    async def generate(
        self,
        messages: list[ChatMessage],
        cancellation: Optional[CancellationToken] = None,
        session_id: Optional[SessionId] = None,
    ) -> AiResponse:
        self.calls.append(list(messages))
        self.session_ids.append(session_id)
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        if self._failure is not None:
            raise self._failure

        last_content = messages[-1].content if messages else ""
        content = self._default_response
        for keyword, response in self._canned_responses.items():
            if keyword in last_content:
                content = response
                break
        return AiResponse(
            content=content,
            prompt_tokens=sum(len(m.content.split()) for m in messages),
            completion_tokens=len(content.split()),
            provider_label=self._label,
            tokens_per_second=0.0,
        )
