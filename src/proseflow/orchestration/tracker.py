"""In-memory tracking of background action executions."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable
from uuid import UUID

from proseflow.models.tracking import ActionStatus, TrackedAction

logger = logging.getLogger(__name__)

TrackerListener = Callable[[TrackedAction], None]


class BackgroundActionTracker:
    """Keeps every in-flight action visible until shortly after it completes."""

    def __init__(self) -> None:
        self._actions: dict[UUID, TrackedAction] = {}
        self._removal_handles: dict[UUID, asyncio.TimerHandle] = {}
        self.on_added: list[TrackerListener] = []
        self.on_removed: list[TrackerListener] = []

    def active_actions(self) -> list[TrackedAction]:
        return list(self._actions.values())

    def get(self, action_id: UUID) -> TrackedAction | None:
        return self._actions.get(action_id)

    def add_action(self, name: str) -> TrackedAction:
        action = TrackedAction(name=name)
        self._actions[action.id] = action
        for listener in self.on_added:
            listener(action)
        return action

    def update_status(self, action_id: UUID, status: ActionStatus) -> None:
        action = self._actions.get(action_id)
        if action is not None:
            action.status = status

    def request_cancellation(self, action_id: UUID) -> bool:
        """Fire the action's cancellation token. ``False`` when the id is unknown."""
        action = self._actions.get(action_id)
        if action is None:
            return False
        logger.info("Cancellation requested for action '%s' (%s)", action.name, action_id)
        action.cancellation.cancel()
        return True

    def complete_action(self, action_id: UUID, final_status: ActionStatus, display_seconds: float = 2.0) -> None:
        action = self._actions.get(action_id)
        if action is None:
            return
        action.status = final_status
        if display_seconds <= 0:
            self._remove(action_id)
            return
        loop = asyncio.get_running_loop()
        self._removal_handles[action_id] = loop.call_later(display_seconds, self._remove, action_id)

    def _remove(self, action_id: UUID) -> None:
        self._removal_handles.pop(action_id, None)
        action = self._actions.pop(action_id, None)
        if action is None:
            return
        for listener in self.on_removed:
            listener(action)
