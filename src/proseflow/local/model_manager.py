"""Lifecycle of the in-process local model: load, idle-unload, unload."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from pathlib import Path
from typing import Callable, Optional

from proseflow.core.protocols import INotifier
from proseflow.core.types import NotificationType
from proseflow.local.native import ILocalModel, LlamaModel
from proseflow.models.settings import ProviderSettings

logger = logging.getLogger(__name__)

ModelLoader = Callable[[ProviderSettings], ILocalModel]
StateListener = Callable[["ModelStatus"], None]


class ModelStatus(StrEnum):
    UNLOADED = "Unloaded"
    LOADING = "Loading"
    LOADED = "Loaded"
    ERROR = "Error"


class LocalModelManager:
    """Holds at most one loaded model for the whole process.

    Loading runs in a worker thread. ``inference_permit`` is held by whoever is
    decoding against the model; unloading waits for it, and an idle timeout
    that fires while the permit is held re-arms instead of unloading. Every
    inference start and finish calls :meth:`reset_idle_timer`.
    """

    def __init__(
        self,
        *,
        loader: ModelLoader = LlamaModel.load,
        notifier: INotifier | None = None,
        path_exists: Callable[[str], bool] = lambda p: Path(p).is_file(),
    ) -> None:
        self._loader = loader
        self._notifier = notifier
        self._path_exists = path_exists
        self._load_lock = asyncio.Lock()
        self.inference_permit = asyncio.Semaphore(1)
        self._loaded_event = asyncio.Event()
        self._loaded_event.set()
        self._idle_handle: asyncio.TimerHandle | None = None
        self._idle_timeout: float | None = None
        self._listeners: list[StateListener] = []
        self.status = ModelStatus.UNLOADED
        self.error_message: Optional[str] = None
        self.model: ILocalModel | None = None
        self.model_path: str = ""

    @property
    def is_loaded(self) -> bool:
        return self.status == ModelStatus.LOADED and self.model is not None

    @property
    def busy(self) -> bool:
        return self.inference_permit.locked()

    @property
    def idle_timer_armed(self) -> bool:
        return self._idle_handle is not None

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    async def load(self, settings: ProviderSettings) -> None:
        """Load the configured model. Failures are recorded in ``status``, never raised."""
        async with self._load_lock:
            if self.status in (ModelStatus.LOADING, ModelStatus.LOADED):
                logger.info("Model load requested, but it's already loading or loaded.")
                return

            path = settings.local_model_path
            if not path or not path.strip() or not self._path_exists(path):
                self._update_state(ModelStatus.ERROR, "Model path is not set or the file does not exist.")
                logger.error(self.error_message)
                return

            self._update_state(ModelStatus.LOADING)
            try:
                self.model = await asyncio.to_thread(self._loader, settings)
            except Exception as exc:
                logger.error("Failed to load local model from %s", path, exc_info=True)
                self._release_model()
                self._update_state(ModelStatus.ERROR, f"Failed to load model: {exc}")
                self._notify("Failed to load local model, please check the logs.", NotificationType.ERROR)
                return

            self.model_path = path
            if settings.local_auto_unload_enabled and settings.local_idle_timeout_minutes > 0:
                self._idle_timeout = settings.local_idle_timeout_minutes * 60.0
                self._arm_idle_timer()
            self._update_state(ModelStatus.LOADED)
            logger.info("Successfully loaded local model from: %s", path)

    async def unload(self) -> None:
        """Unload once no decode holds the inference permit."""
        async with self.inference_permit:
            self._unload_now()

    async def wait_until_settled(self) -> None:
        """Block while a load is in progress."""
        if self.status == ModelStatus.LOADING:
            logger.info("Waiting for local model to finish loading.")
        await self._loaded_event.wait()

    def reset_idle_timer(self) -> None:
        if self._idle_handle is None:
            return
        self._cancel_idle_timer()
        self._arm_idle_timer()

    # ---- internals ----

    def _unload_now(self) -> None:
        logger.info("Unloading local model.")
        self._cancel_idle_timer()
        self._idle_timeout = None
        self._release_model()
        self.model_path = ""
        self._update_state(ModelStatus.UNLOADED)

    def _arm_idle_timer(self) -> None:
        if self._idle_timeout is None:
            return
        loop = asyncio.get_running_loop()
        self._idle_handle = loop.call_later(self._idle_timeout, self._on_idle_timeout)

    def _cancel_idle_timer(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None

    def _on_idle_timeout(self) -> None:
        self._idle_handle = None
        if self.busy:
            logger.debug("Idle timeout reached during inference; postponing unload.")
            self._arm_idle_timer()
            return
        logger.info("Local model idle timeout reached. Unloading model.")
        self._notify("Unloading idle local model to free resources.", NotificationType.INFO)
        self._unload_now()

    def _release_model(self) -> None:
        model, self.model = self.model, None
        if model is not None:
            model.close()

    def _update_state(self, status: ModelStatus, error_message: str | None = None) -> None:
        self.status = status
        self.error_message = error_message
        if status == ModelStatus.LOADING:
            self._loaded_event.clear()
        else:
            self._loaded_event.set()
        for listener in list(self._listeners):
            listener(status)

    def _notify(self, message: str, severity: NotificationType) -> None:
        if self._notifier is not None:
            self._notifier.notify(message, severity)
