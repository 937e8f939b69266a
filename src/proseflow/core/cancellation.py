"""Cooperative cancellation token threaded through provider calls."""

from __future__ import annotations

import asyncio

from proseflow.core.exceptions import OperationCancelledError


class CancellationToken:
    """One-shot cancellation signal.

    Unlike ``Task.cancel()`` the token only aborts the work that checks it, so
    an orchestrator can observe a cancelled provider attempt and still decide
    what to do next.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
