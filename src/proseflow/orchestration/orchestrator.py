"""Request orchestration: turn a triggered action into provider calls.

The orchestrator builds the conversation, tries the primary provider and
then the fallback, and drives the in-place, windowed and diff flows. Every
collaborator is a port injected through the constructor.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from proseflow.core.cancellation import CancellationToken
from proseflow.core.exceptions import (
    InputUnavailableError,
    OperationCancelledError,
    ProseFlowError,
    ProviderUnavailableError,
)
from proseflow.core.protocols import (
    IAiProvider,
    IDiffSurface,
    IHistoryRecorder,
    INotifier,
    IResultSurface,
    ISessionManager,
    ISettingsProvider,
    ITextPort,
)
from proseflow.core.types import NotificationType, SessionId
from proseflow.model_providers.registry import ProviderRegistry
from proseflow.models.action import ExecutionRequest, OutputMode
from proseflow.models.chat import AiResponse, ChatMessage, ProviderType, Role, last_user_message
from proseflow.models.results import Accepted, DiffViewData, Refined, Regenerated
from proseflow.models.tracking import ActionStatus
from proseflow.orchestration.output_parser import parse_output
from proseflow.orchestration.tracker import BackgroundActionTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_INPUT_MESSAGE = "No text selected or clipboard is empty."
ALL_FAILED_MESSAGE = "All available AI providers failed."
SESSION_FAILED_MESSAGE = "Failed to start a local model session."


class ExecutionOutcome(BaseModel):
    """Result of one fallback-aware execution. ``response`` is ``None`` on total failure."""

    model_config = ConfigDict(frozen=True)

    response: Optional[AiResponse] = None
    provider_name: str = ""
    provider_type: Optional[ProviderType] = None
    latency_ms: float = 0.0
    attempted: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.response is not None


class _Execution:
    """Mutable state of one ``process`` call."""

    def __init__(self, request: ExecutionRequest, input_text: str, cancellation: CancellationToken) -> None:
        self.request = request
        self.action = request.action
        self.input_text = input_text
        self.cancellation = cancellation
        self.session_id: Optional[SessionId] = None
        self.history: list[ChatMessage] = [
            ChatMessage(role=Role.SYSTEM, content=self.action.system_instruction),
            ChatMessage(role=Role.USER, content=f"{self.action.prefix}{input_text}"),
        ]


class Orchestrator:
    """Coordinates a single user-triggered action from input capture to output."""

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        sessions: ISessionManager,
        text_port: ITextPort,
        history: IHistoryRecorder,
        notifier: INotifier,
        result_surface: IResultSurface,
        diff_surface: IDiffSurface,
        settings: ISettingsProvider,
        tracker: BackgroundActionTracker | None = None,
    ) -> None:
        self._providers = providers
        self._sessions = sessions
        self._text_port = text_port
        self._history = history
        self._notifier = notifier
        self._result_surface = result_surface
        self._diff_surface = diff_surface
        self._settings = settings
        self.tracker = tracker or BackgroundActionTracker()

    async def process(self, request: ExecutionRequest, input_text_override: Optional[str] = None) -> None:
        """Execute ``request``. Outcomes are reported through the ports, never raised."""
        started = time.perf_counter()
        action = request.action
        self._notifier.notify(f"Processing '{action.name}' ...", NotificationType.INFO)
        tracked = self.tracker.add_action(action.name)
        execution: _Execution | None = None

        try:
            input_text = await self._capture_input(input_text_override)
            self.tracker.update_status(tracked.id, ActionStatus.PROCESSING)
            execution = _Execution(request, input_text, tracked.cancellation)

            mode = request.resolve_output_mode()
            if mode == OutputMode.WINDOWED:
                succeeded = await self._run_windowed(execution)
            elif mode == OutputMode.DIFF:
                succeeded = await self._run_diff(execution)
            else:
                succeeded = await self._run_in_place(execution)

            logger.info("Action '%s' completed in %.2fs.", action.name, time.perf_counter() - started)
            self.tracker.complete_action(tracked.id, ActionStatus.SUCCESS if succeeded else ActionStatus.ERROR)
        except InputUnavailableError:
            self._notifier.notify(NO_INPUT_MESSAGE, NotificationType.WARNING)
            self.tracker.complete_action(tracked.id, ActionStatus.ERROR)
        except OperationCancelledError:
            logger.info("Action '%s' was cancelled by the user.", action.name)
            self.tracker.complete_action(tracked.id, ActionStatus.ERROR, display_seconds=0.1)
        except Exception as exc:
            logger.error("Error executing action: %s", action.name, exc_info=True)
            message = str(exc) if isinstance(exc, ProseFlowError) else "An unexpected error occurred."
            self._notifier.notify(f"Error: {message}", NotificationType.ERROR)
            self.tracker.complete_action(tracked.id, ActionStatus.ERROR)
        finally:
            if execution is not None and execution.session_id is not None:
                self._sessions.end(execution.session_id)

    # ---- flows ----

    async def _run_in_place(self, execution: _Execution) -> bool:
        execution.cancellation.raise_if_cancelled()
        outcome = await self.execute_with_fallback(
            execution.history, execution.request.effective_provider_override, execution.cancellation
        )
        if not outcome.succeeded:
            self._notifier.notify(ALL_FAILED_MESSAGE, NotificationType.ERROR)
            return False

        await self._log_exchange(execution, outcome, outcome.response.content)
        await self._text_port.paste_text(outcome.response.content)
        return True

    async def _run_windowed(self, execution: _Execution) -> bool:
        while True:
            outcome = await self._run_turn(execution)
            if outcome is None:
                return False

            content = outcome.response.content
            execution.history.append(ChatMessage(role=Role.ASSISTANT, content=content))
            await self._log_exchange(execution, outcome, content)

            main_output, explanation = parse_output(content, execution.action.explain_changes)
            refinement = await self._await_user(
                self._result_surface.present_result(execution.action.name, main_output, explanation),
                execution.cancellation,
            )
            if refinement is None:
                return True
            execution.history.append(ChatMessage(role=Role.USER, content=refinement.new_instruction))

    async def _run_diff(self, execution: _Execution) -> bool:
        while True:
            outcome = await self._run_turn(execution)
            if outcome is None:
                return False

            content = outcome.response.content
            decision = await self._await_user(
                self._diff_surface.present_diff(
                    DiffViewData(
                        action_name=execution.action.name,
                        original_text=execution.input_text,
                        generated_text=content,
                    )
                ),
                execution.cancellation,
            )

            if isinstance(decision, Accepted):
                await self._log_exchange(execution, outcome, decision.new_text)
                await self._text_port.paste_text(decision.new_text)
                return True
            if isinstance(decision, Refined):
                execution.history.append(ChatMessage(role=Role.ASSISTANT, content=content))
                execution.history.append(ChatMessage(role=Role.USER, content=decision.refinement_instruction))
                continue
            if isinstance(decision, Regenerated):
                continue
            # Cancelled or closed without a decision
            return True

    async def _run_turn(self, execution: _Execution) -> ExecutionOutcome | None:
        """One provider round of an interactive loop; starts the local session on the first Local turn."""
        execution.cancellation.raise_if_cancelled()
        outcome = await self.execute_with_fallback(
            execution.history,
            execution.request.effective_provider_override,
            execution.cancellation,
            execution.session_id,
        )
        if not outcome.succeeded:
            self._notifier.notify(ALL_FAILED_MESSAGE, NotificationType.ERROR)
            return None

        if outcome.provider_type == ProviderType.LOCAL and execution.session_id is None:
            execution.session_id = await self._sessions.start()
            if execution.session_id is None:
                self._notifier.notify(SESSION_FAILED_MESSAGE, NotificationType.ERROR)
                return None
        return outcome

    # ---- provider selection ----

    async def execute_with_fallback(
        self,
        messages: list[ChatMessage],
        provider_override: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
        session_id: Optional[SessionId] = None,
    ) -> ExecutionOutcome:
        """Try the primary provider, then the configured fallback."""
        settings = self._settings.get_provider_settings()
        attempted: list[str] = []

        primary = self._resolve_primary(provider_override, settings.primary_service_type)
        if primary is not None:
            attempted.append(primary.name)
            try:
                return await self._attempt(primary, messages, cancellation, session_id, attempted)
            except Exception:
                logger.warning("Primary provider '%s' failed. Attempting fallback.", primary.name, exc_info=True)
                self._notifier.notify(
                    f"Primary provider ({primary.name}) failed. Trying fallback...", NotificationType.WARNING
                )

        if not settings.has_fallback:
            logger.info("No fallback provider is configured.")
            return ExecutionOutcome(attempted=attempted)

        fallback = self._providers.resolve(settings.fallback_service_type)
        if fallback is None:
            logger.warning(str(ProviderUnavailableError(settings.fallback_service_type)))
            return ExecutionOutcome(attempted=attempted)
        if primary is not None and fallback.name.lower() == primary.name.lower():
            logger.info("Fallback provider '%s' is the same as the primary; skipping.", fallback.name)
            return ExecutionOutcome(attempted=attempted)

        attempted.append(fallback.name)
        try:
            # the fallback runs without the cancellation token
            return await self._attempt(fallback, messages, None, session_id, attempted)
        except Exception:
            logger.error("Fallback provider '%s' also failed.", fallback.name, exc_info=True)
        return ExecutionOutcome(attempted=attempted)

    def _resolve_primary(self, provider_override: Optional[str], primary_service_type: str) -> IAiProvider | None:
        if provider_override and provider_override.strip():
            provider = self._providers.resolve(provider_override)
            if provider is not None:
                return provider
            logger.warning("Provider override '%s' is not registered; using configuration.", provider_override)
        provider = self._providers.resolve(primary_service_type)
        if provider is None:
            logger.warning(str(ProviderUnavailableError(primary_service_type)))
        return provider

    async def _attempt(
        self,
        provider: IAiProvider,
        messages: list[ChatMessage],
        cancellation: Optional[CancellationToken],
        session_id: Optional[SessionId],
        attempted: list[str],
    ) -> ExecutionOutcome:
        started = time.perf_counter()
        response = await provider.generate(list(messages), cancellation, session_id)
        latency_ms = (time.perf_counter() - started) * 1000
        logger.info("Provider '%s' succeeded in %.0f ms.", provider.name, latency_ms)
        return ExecutionOutcome(
            response=response,
            provider_name=provider.name,
            provider_type=provider.provider_type,
            latency_ms=latency_ms,
            attempted=list(attempted),
        )

    # ---- helpers ----

    async def _capture_input(self, input_text_override: Optional[str]) -> str:
        text = input_text_override if input_text_override is not None else await self._text_port.get_selected_text()
        if text is None or not text.strip():
            raise InputUnavailableError(NO_INPUT_MESSAGE)
        return text

    async def _await_user(self, awaitable: Awaitable[T], cancellation: CancellationToken) -> T:
        """Await a user-facing surface, aborting when the action is cancelled."""
        interaction = asyncio.ensure_future(awaitable)
        cancelled = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({interaction, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not interaction.done():
                interaction.cancel()
        if interaction.done() and not interaction.cancelled():
            return interaction.result()
        raise OperationCancelledError("Operation was cancelled")

    async def _log_exchange(self, execution: _Execution, outcome: ExecutionOutcome, output_text: str) -> None:
        response = outcome.response
        last_user = last_user_message(execution.history)
        try:
            await self._history.record_exchange(
                action_name=execution.action.name,
                provider_family=outcome.provider_name,
                model_label=response.provider_label,
                input_text=last_user.content if last_user is not None else "",
                output_text=output_text,
                prompt_tokens=response.prompt_tokens,
                completion_tokens=response.completion_tokens,
                latency_ms=outcome.latency_ms,
                tokens_per_second=response.tokens_per_second,
            )
        except Exception:
            logger.warning("Failed to log history entry.", exc_info=True)
            self._notifier.notify("Failed to log to history", NotificationType.WARNING)
