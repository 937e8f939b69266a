"""In-process local provider driving llama-cpp-python conversations.

Loads the configured GGUF model on demand and runs the token-by-token
decode loop. The model manager's inference permit is held for the whole
turn, so concurrent local requests queue instead of racing on the model's
single native context and the model cannot be unloaded mid-decode.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Callable, Optional

from proseflow.core.cancellation import CancellationToken
from proseflow.core.exceptions import (
    InferenceError,
    ModelUnavailableError,
    OperationCancelledError,
    PromptBuildError,
)
from proseflow.core.protocols import ISettingsProvider
from proseflow.core.types import SessionId
from proseflow.local.model_manager import LocalModelManager
from proseflow.local.native import IConversation, ILocalModel, TokenDecoder
from proseflow.local.session_manager import LocalSessionManager
from proseflow.local.throughput import ThroughputMeter
from proseflow.models.chat import AiResponse, ChatMessage, ProviderType, last_user_message
from proseflow.models.settings import ProviderSettings

logger = logging.getLogger(__name__)


class LocalProvider:
    """IAiProvider implementation backed by the local model manager."""

    name = "Local"
    provider_type = ProviderType.LOCAL

    def __init__(
        self,
        model_manager: LocalModelManager,
        session_manager: LocalSessionManager,
        settings_provider: ISettingsProvider,
        *,
        measurement_interval: float = 1.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._model_manager = model_manager
        self._session_manager = session_manager
        self._settings_provider = settings_provider
        self._measurement_interval = measurement_interval
        self._clock = clock
        self._permit = model_manager.inference_permit

    @property
    def busy(self) -> bool:
        return self._model_manager.busy

    async def generate(
        self,
        messages: list[ChatMessage],
        cancellation: Optional[CancellationToken] = None,
        session_id: Optional[SessionId] = None,
    ) -> AiResponse:
        await self._acquire_permit(cancellation)
        try:
            settings = self._settings_provider.get_provider_settings()
            model = await self._ensure_model(settings)
            self._model_manager.reset_idle_timer()

            with contextlib.ExitStack() as scope:
                conversation = self._resolve_conversation(model, session_id, scope)
                return await self._run_turn(model, conversation, messages, settings, cancellation)
        finally:
            self._model_manager.reset_idle_timer()
            self._permit.release()

    # ---- steps ----

    async def _acquire_permit(self, cancellation: Optional[CancellationToken]) -> None:
        if cancellation is None:
            await self._permit.acquire()
            return
        cancellation.raise_if_cancelled()

        acquire = asyncio.ensure_future(self._permit.acquire())
        cancelled = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({acquire, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            self._abandon_acquire(acquire)
            raise
        finally:
            cancelled.cancel()
        if cancellation.cancelled:
            self._abandon_acquire(acquire)
            raise OperationCancelledError("Operation was cancelled")

    def _abandon_acquire(self, acquire: asyncio.Future) -> None:
        if not acquire.done():
            acquire.cancel()
        elif not acquire.cancelled():
            self._permit.release()

    async def _ensure_model(self, settings: ProviderSettings) -> ILocalModel:
        if not self._model_manager.is_loaded:
            logger.info("Local model not loaded. Attempting to load...")
            await self._model_manager.load(settings)
        model = self._model_manager.model
        if not self._model_manager.is_loaded or model is None:
            raise ModelUnavailableError(str(self._model_manager.status), self._model_manager.error_message)
        return model

    def _resolve_conversation(
        self, model: ILocalModel, session_id: Optional[SessionId], scope: contextlib.ExitStack
    ) -> IConversation:
        if session_id is not None:
            conversation = self._session_manager.get(session_id)
            if conversation is not None:
                return conversation
            logger.warning("Local session %s not found; using a temporary conversation", session_id)

        conversation = model.create_conversation()
        scope.callback(conversation.dispose)
        return conversation

    def _build_prompt(self, model: ILocalModel, messages: list[ChatMessage], is_new: bool) -> str:
        if is_new:
            to_render = list(messages)
        else:
            last = last_user_message(messages)
            to_render = [last] if last is not None else []
        try:
            return model.render_chat(to_render, add_assistant=True, include_bos=is_new)
        except Exception as exc:
            logger.critical("Failed to render chat template for model %s", model.label, exc_info=True)
            raise PromptBuildError(model.label) from exc

    async def _run_turn(
        self,
        model: ILocalModel,
        conversation: IConversation,
        messages: list[ChatMessage],
        settings: ProviderSettings,
        cancellation: Optional[CancellationToken],
    ) -> AiResponse:
        # token_count == 0 is the only signal that the conversation has no primed context
        is_new = conversation.token_count == 0
        prompt = self._build_prompt(model, messages, is_new)

        meter = ThroughputMeter(self._measurement_interval, self._clock)
        decoder = TokenDecoder(model)
        pieces: list[str] = []
        completion_tokens = 0
        try:
            prompt_tokens = model.tokenize(prompt, add_bos=is_new)
            conversation.prompt(prompt_tokens)
            meter.start()

            for _ in range(settings.local_max_tokens):
                if cancellation is not None:
                    cancellation.raise_if_cancelled()
                if conversation.requires_inference:
                    await asyncio.to_thread(conversation.infer)
                if not conversation.requires_sampling:
                    continue

                token = conversation.sample(settings.local_temperature)
                if model.is_end_of_generation(token) or model.is_control(token):
                    break
                completion_tokens += 1
                pieces.append(decoder.add(token))
                conversation.prompt([token])
                meter.record(completion_tokens)

            pieces.append(decoder.flush())
            meter.stop(completion_tokens)
        except OperationCancelledError:
            logger.info("Local inference cancelled after %d tokens", completion_tokens)
            raise
        except Exception as exc:
            logger.error("Error during local model inference", exc_info=True)
            raise InferenceError(f"Local inference failed: {exc}") from exc

        tps = meter.tokens_per_second
        logger.info(
            "Local inference complete: %d prompt tokens, %d completion tokens in %.0f ms (%.2f tokens/s)",
            len(prompt_tokens),
            completion_tokens,
            meter.elapsed * 1000,
            tps,
        )
        return AiResponse(
            content="".join(pieces).strip(),
            prompt_tokens=len(prompt_tokens),
            completion_tokens=completion_tokens,
            provider_label=model.label,
            tokens_per_second=tps,
        )
