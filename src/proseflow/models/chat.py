"""Chat messages and provider responses shared by every provider."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ProviderType(StrEnum):
    """Provider family. ``CLOUD`` and ``LOCAL`` name the two registered adapters."""

    CLOUD = "Cloud"
    LOCAL = "Local"
    MOCK = "Mock"


class CloudProviderType(StrEnum):
    """Concrete cloud vendors reachable through an OpenAI-compatible endpoint."""

    OPENAI = "OpenAi"
    ANTHROPIC = "Anthropic"
    DEEPINFRA = "DeepInfra"
    DEEPSEEK = "DeepSeek"
    GOOGLE = "Google"
    GROQ = "Groq"
    MISTRAL = "Mistral"
    OPENROUTER = "OpenRouter"
    PERPLEXITY = "Perplexity"
    XAI = "XAi"
    CUSTOM = "Custom"


class ChatMessage(BaseModel):
    """A single message of the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class AiResponse(BaseModel):
    """Value produced by one provider call."""

    model_config = ConfigDict(frozen=True)

    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    provider_label: str = ""  # concrete model / endpoint name
    tokens_per_second: float = 0.0


def last_user_message(messages: list[ChatMessage]) -> ChatMessage | None:
    for message in reversed(messages):
        if message.role == Role.USER:
            return message
    return None
