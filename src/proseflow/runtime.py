"""Composition root: wires providers, stores and local model services."""

from __future__ import annotations

import logging

from proseflow.core.config import AppSettings
from proseflow.core.protocols import IDiffSurface, INotifier, IResultSurface, ITextPort
from proseflow.local.model_manager import LocalModelManager, ModelLoader
from proseflow.local.native import LlamaModel
from proseflow.local.session_manager import LocalSessionManager
from proseflow.model_providers.cloud_provider import CloudProvider
from proseflow.model_providers.local_provider import LocalProvider
from proseflow.model_providers.registry import ProviderRegistry
from proseflow.orchestration.orchestrator import Orchestrator
from proseflow.orchestration.tracker import BackgroundActionTracker
from proseflow.persistence import create_persistence
from proseflow.services.history_service import HistoryService
from proseflow.services.notifications import LoggingNotifier
from proseflow.services.settings_service import EnvSettingsProvider, SettingsCloudConfigStore
from proseflow.services.usage_tracking import UsageTracker

logger = logging.getLogger(__name__)


class Runtime:
    """Long-lived services shared by every action execution."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        notifier: INotifier,
        model_manager: LocalModelManager,
        session_manager: LocalSessionManager,
        providers: ProviderRegistry,
        history: HistoryService,
        usage: UsageTracker,
        settings_provider: EnvSettingsProvider,
        tracker: BackgroundActionTracker,
    ) -> None:
        self.settings = settings
        self.notifier = notifier
        self.model_manager = model_manager
        self.session_manager = session_manager
        self.providers = providers
        self.history = history
        self.usage = usage
        self.settings_provider = settings_provider
        self.tracker = tracker

    def create_orchestrator(
        self, text_port: ITextPort, result_surface: IResultSurface, diff_surface: IDiffSurface
    ) -> Orchestrator:
        """Bind the shell's text and result surfaces to the shared services."""
        return Orchestrator(
            providers=self.providers,
            sessions=self.session_manager,
            text_port=text_port,
            history=self.history,
            notifier=self.notifier,
            result_surface=result_surface,
            diff_surface=diff_surface,
            settings=self.settings_provider,
            tracker=self.tracker,
        )

    async def start(self) -> None:
        await self.usage.initialize()
        if self.settings.local.load_on_startup:
            await self.model_manager.load(self.settings_provider.get_provider_settings())

    async def shutdown(self) -> None:
        """End open sessions and unload the model once any in-flight decode finishes."""
        if self.model_manager.model is not None:
            await self.model_manager.unload()
        self.session_manager.end_all()


def build_runtime(
    settings: AppSettings | None = None,
    *,
    notifier: INotifier | None = None,
    loader: ModelLoader = LlamaModel.load,
) -> Runtime:
    if settings is None:
        settings = AppSettings()
    notifier = notifier or LoggingNotifier()

    history_store, usage_store = create_persistence(settings)
    settings_provider = EnvSettingsProvider()
    usage = UsageTracker(usage_store)
    model_manager = LocalModelManager(loader=loader, notifier=notifier)
    session_manager = LocalSessionManager(model_manager)

    providers = ProviderRegistry(
        [
            CloudProvider(SettingsCloudConfigStore(), usage, notifier, timeout=settings.cloud.timeout),
            LocalProvider(model_manager, session_manager, settings_provider),
        ]
    )
    logger.info("Runtime ready with providers: %s", ", ".join(providers.names()))

    return Runtime(
        settings=settings,
        notifier=notifier,
        model_manager=model_manager,
        session_manager=session_manager,
        providers=providers,
        history=HistoryService(history_store),
        usage=usage,
        settings_provider=settings_provider,
        tracker=BackgroundActionTracker(),
    )
