"""Mapping from session id to a live local conversation."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from proseflow.core.types import SessionId
from proseflow.local.model_manager import LocalModelManager, ModelStatus
from proseflow.local.native import IConversation

logger = logging.getLogger(__name__)


class LocalSessionManager:
    """Creates, looks up and disposes local conversations.

    All sessions are ended when the model is unloaded, since their native
    state belongs to the model that created them.
    """

    def __init__(self, model_manager: LocalModelManager) -> None:
        self._model_manager = model_manager
        self._sessions: dict[SessionId, IConversation] = {}
        model_manager.add_listener(self._on_model_state_changed)

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def start(self) -> Optional[SessionId]:
        await self._model_manager.wait_until_settled()
        model = self._model_manager.model
        if not self._model_manager.is_loaded or model is None:
            logger.error("Cannot start a local session: model is not loaded (status: %s)", self._model_manager.status)
            return None

        session_id = uuid.uuid4()
        self._sessions[session_id] = model.create_conversation()
        logger.info("Started local session %s", session_id)
        return session_id

    def get(self, session_id: SessionId) -> IConversation | None:
        return self._sessions.get(session_id)

    def end(self, session_id: SessionId) -> None:
        conversation = self._sessions.pop(session_id, None)
        if conversation is None:
            return
        conversation.dispose()
        logger.info("Ended local session %s", session_id)

    def end_all(self) -> None:
        for session_id in list(self._sessions):
            self.end(session_id)

    def _on_model_state_changed(self, status: ModelStatus) -> None:
        if status in (ModelStatus.UNLOADED, ModelStatus.ERROR) and self._sessions:
            logger.info("Local model is %s; ending %d session(s)", status, len(self._sessions))
            self.end_all()
