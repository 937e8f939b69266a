"""Cloud provider over an ordered chain of OpenAI-compatible endpoints."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from openai import APIConnectionError, AsyncOpenAI

from proseflow.core.cancellation import CancellationToken
from proseflow.core.exceptions import CloudProviderError, OperationCancelledError
from proseflow.core.protocols import ICloudConfigStore, INotifier, IUsageRecorder
from proseflow.core.types import NotificationType, SessionId
from proseflow.models.chat import AiResponse, ChatMessage, CloudProviderType, ProviderType
from proseflow.models.settings import CloudProviderConfiguration

logger = logging.getLogger(__name__)

KNOWN_BASE_URLS: dict[CloudProviderType, str] = {
    CloudProviderType.ANTHROPIC: "https://api.anthropic.com/v1/",
    CloudProviderType.DEEPINFRA: "https://api.deepinfra.com/v1/openai",
    CloudProviderType.DEEPSEEK: "https://api.deepseek.com/v1",
    CloudProviderType.GOOGLE: "https://generativelanguage.googleapis.com/v1beta/openai/",
    CloudProviderType.GROQ: "https://api.groq.com/openai/v1",
    CloudProviderType.MISTRAL: "https://api.mistral.ai/v1",
    CloudProviderType.OPENROUTER: "https://openrouter.ai/api/v1",
    CloudProviderType.PERPLEXITY: "https://api.perplexity.ai",
    CloudProviderType.XAI: "https://api.x.ai/v1",
}

ClientFactory = Callable[[CloudProviderConfiguration], AsyncOpenAI]

NO_ENABLED_PROVIDERS = "No enabled cloud providers are configured. Please add and enable one in settings."


def resolve_base_url(config: CloudProviderConfiguration) -> Optional[str]:
    """Custom base URL first, then the vendor's known endpoint. ``None`` means the OpenAI default."""
    if config.base_url.strip():
        return config.base_url.strip()
    return KNOWN_BASE_URLS.get(config.provider_type)


class CloudProvider:
    """IAiProvider that tries each enabled cloud configuration in ``sort_order``.

    The first configuration that streams back non-empty content wins. A failing
    configuration produces a warning notification and the next one is tried.
    """

    name = "Cloud"
    provider_type = ProviderType.CLOUD

    def __init__(
        self,
        config_store: ICloudConfigStore,
        usage: IUsageRecorder,
        notifier: INotifier,
        *,
        timeout: float = 60.0,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config_store = config_store
        self._usage = usage
        self._notifier = notifier
        self._timeout = timeout
        self._client_factory = client_factory or self._build_client
        self._clock = clock

    async def generate(
        self,
        messages: list[ChatMessage],
        cancellation: Optional[CancellationToken] = None,
        session_id: Optional[SessionId] = None,
    ) -> AiResponse:
        configs = sorted(
            (c for c in self._config_store.list_configurations() if c.enabled),
            key=lambda c: c.sort_order,
        )
        if not configs:
            self._notifier.notify(NO_ENABLED_PROVIDERS, NotificationType.WARNING)
            raise CloudProviderError(NO_ENABLED_PROVIDERS)

        payload = [{"role": str(m.role), "content": m.content} for m in messages]
        for config in configs:
            try:
                response = await self._stream(config, payload, cancellation)
            except OperationCancelledError:
                raise
            except (APIConnectionError, httpx.TransportError):
                logger.warning("Provider '%s' is not available or not responding.", config.name, exc_info=True)
                self._notifier.notify(
                    f"Provider '{config.name}' is not available or no internet connection. Trying next provider...",
                    NotificationType.WARNING,
                )
                continue
            except Exception as exc:
                logger.warning("Provider '%s' failed.", config.name, exc_info=True)
                self._notifier.notify(
                    f"Provider '{config.name}' failed: {exc}. Trying next provider...",
                    NotificationType.WARNING,
                )
                continue
            if response is not None:
                return response

        logger.error("All configured cloud providers failed to return a valid response.")
        raise CloudProviderError("All configured cloud providers failed to return a valid response.")

    async def _stream(
        self,
        config: CloudProviderConfiguration,
        payload: list[dict[str, str]],
        cancellation: Optional[CancellationToken],
    ) -> AiResponse | None:
        client = self._client_factory(config)
        pieces: list[str] = []
        prompt_tokens = 0
        completion_tokens = 0

        started = self._clock()
        stream = await client.chat.completions.create(
            model=config.model,
            messages=payload,
            temperature=config.temperature,
            stream=True,
            stream_options={"include_usage": True},
        )
        async for chunk in stream:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            for choice in chunk.choices or []:
                text = getattr(choice.delta, "content", None)
                if text:
                    pieces.append(text)
            # usage arrives on the final chunk
            if chunk.usage is not None:
                prompt_tokens = chunk.usage.prompt_tokens or 0
                completion_tokens = chunk.usage.completion_tokens or 0
        elapsed = self._clock() - started

        if prompt_tokens > 0 or completion_tokens > 0:
            await self._usage.add_usage(prompt_tokens, completion_tokens)

        content = "".join(pieces)
        if not content:
            logger.warning("Provider '%s' returned an empty response.", config.name)
            return None

        tps = 0.0
        if completion_tokens > 0 and elapsed > 0:
            tps = completion_tokens / elapsed
        elif completion_tokens > 0:
            logger.warning("Could not calculate tokens per second for provider '%s'. Elapsed time was zero.", config.name)

        logger.info("Cloud provider '%s' responded with %d completion tokens", config.name, completion_tokens)
        return AiResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            provider_label=config.name,
            tokens_per_second=tps,
        )

    def _build_client(self, config: CloudProviderConfiguration) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=config.api_key or "not-set",
            base_url=resolve_base_url(config),
            timeout=self._timeout,
        )
