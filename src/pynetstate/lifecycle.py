"""Application lifecycle hook-up.

The host framework owns foreground/background transitions. It reports
them through a :class:`LifecycleHub`; components that must refresh on
resume register a handler instead of implementing an observer interface.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

_logger = logging.getLogger(__name__)

ResumeHandler = Callable[[], Awaitable[object]]


class AppLifecycleState(StrEnum):
    RESUMED = "resumed"
    INACTIVE = "inactive"
    HIDDEN = "hidden"
    PAUSED = "paused"
    DETACHED = "detached"


class LifecycleHub:
    """Fan-out point for lifecycle transitions reported by the host."""

    def __init__(self) -> None:
        self._resume_handlers: list[ResumeHandler] = []
        self._state: AppLifecycleState | None = None

    @property
    def state(self) -> AppLifecycleState | None:
        """Last transition reported, or ``None`` before the first one."""
        return self._state

    @property
    def handler_count(self) -> int:
        return len(self._resume_handlers)

    def add_resume_handler(self, handler: ResumeHandler) -> None:
        self._resume_handlers.append(handler)

    def remove_resume_handler(self, handler: ResumeHandler) -> None:
        try:
            self._resume_handlers.remove(handler)
        except ValueError:
            _logger.debug("Resume handler %r was not registered", handler)

    async def notify(self, state: AppLifecycleState | str) -> None:
        """Report a transition; resume handlers run only for ``resumed``.

        Handlers run in registration order. A failing handler propagates
        to the caller and stops the remaining ones.
        """
        state = AppLifecycleState(state)
        self._state = state
        _logger.debug("Lifecycle transition to %s", state)
        if state != AppLifecycleState.RESUMED:
            return
        for handler in list(self._resume_handlers):
            await handler()
