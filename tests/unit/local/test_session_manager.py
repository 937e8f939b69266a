"""Tests for LocalSessionManager."""

from __future__ import annotations

import asyncio
import time
import uuid

import pytest

from proseflow.local.model_manager import LocalModelManager, ModelStatus
from proseflow.local.session_manager import LocalSessionManager
from proseflow.models.settings import ProviderSettings
from tests.fakes.local_model import FakeLocalModel

SETTINGS = ProviderSettings(local_model_path="/models/fake.gguf", local_auto_unload_enabled=False)


def _make(model: FakeLocalModel | None = None, loader=None):
    model = model or FakeLocalModel()
    manager = LocalModelManager(loader=loader or (lambda s: model), path_exists=lambda p: True)
    return LocalSessionManager(manager), manager, model


class TestStart:
    @pytest.mark.asyncio
    async def test_returns_none_without_loaded_model(self):
        sessions, _, model = _make()

        assert await sessions.start() is None
        assert model.conversations == []

    @pytest.mark.asyncio
    async def test_creates_conversation(self):
        sessions, manager, model = _make()
        await manager.load(SETTINGS)

        session_id = await sessions.start()

        assert session_id is not None
        assert sessions.get(session_id) is model.conversations[0]

    @pytest.mark.asyncio
    async def test_waits_while_model_is_loading(self):
        model = FakeLocalModel()

        def slow_loader(settings):
            time.sleep(0.05)
            return model

        sessions, manager, _ = _make(model, loader=slow_loader)
        load = asyncio.create_task(manager.load(SETTINGS))
        await asyncio.sleep(0.01)
        assert manager.status == ModelStatus.LOADING

        session_id = await sessions.start()

        assert session_id is not None
        await load


class TestEnd:
    @pytest.mark.asyncio
    async def test_end_then_get_returns_none(self):
        sessions, manager, model = _make()
        await manager.load(SETTINGS)
        session_id = await sessions.start()

        sessions.end(session_id)

        assert sessions.get(session_id) is None
        assert model.conversations[0].dispose_calls == 1

    @pytest.mark.asyncio
    async def test_end_is_idempotent(self):
        sessions, manager, model = _make()
        await manager.load(SETTINGS)
        session_id = await sessions.start()

        sessions.end(session_id)
        sessions.end(session_id)
        sessions.end(uuid.uuid4())

        assert model.conversations[0].dispose_calls == 1

    @pytest.mark.asyncio
    async def test_unload_ends_all_sessions(self):
        sessions, manager, model = _make()
        await manager.load(SETTINGS)
        await sessions.start()
        await sessions.start()

        await manager.unload()

        assert sessions.active_count == 0
        assert all(c.disposed for c in model.conversations)
