"""In-memory connectivity source for tests and demos.

Mirrors the shape of a real platform source: ``value`` is what an
on-demand pull returns, and :meth:`MockConnectivitySource.push` feeds a
reading through the push channel. Processing is asynchronous relative to
the push, so ``push()`` waits until the tracker has either published or
discarded the reading before returning.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence

from pynetstate.models.connectivity import RawConnectivity
from pynetstate.sources.base import PushCallback, RawReading

_logger = logging.getLogger(__name__)


class MockConnectivitySource:
    """Controllable :class:`~pynetstate.sources.ConnectivitySource`."""

    def __init__(self, value: Sequence[RawConnectivity | str] | None = None) -> None:
        self.value: list[RawConnectivity | str] = list(value) if value is not None else [RawConnectivity.NONE]
        self.pull_error: BaseException | None = None
        self.pull_calls = 0
        self.pushed: list[list[RawConnectivity | str]] = []
        self._listeners: list[PushCallback] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def pull(self) -> RawReading:
        self.pull_calls += 1
        if self.pull_error is not None:
            raise self.pull_error
        return list(self.value)

    def subscribe(self, callback: PushCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _cancel() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _cancel

    async def push(self, raw: Sequence[RawConnectivity | str]) -> bool:
        """Deliver *raw* to every listener and wait until it is processed.

        Returns ``True`` if any listener published a new state. With no
        listeners attached the reading goes nowhere and ``False`` is
        returned. Processing errors propagate.
        """
        reading = list(raw)
        self.pushed.append(reading)
        futures = [callback(reading) for callback in list(self._listeners)]
        if not futures:
            _logger.debug("Push with no listeners dropped: %s", reading)
            return False
        results = await asyncio.gather(*futures)
        return any(results)

    async def change(self, raw: Sequence[RawConnectivity | str]) -> bool:
        """Make *raw* the pull value and push it, as a platform change would."""
        self.value = list(raw)
        return await self.push(raw)
