"""Connectivity tracker: change detection and fan-out.

Owns:
- the single current :class:`ConnectivityState`
- the worker task that serializes pushed readings and resume polls
- subscriber queues and listener callbacks (no replay)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from pynetstate.exceptions import TrackerDisposedError, TrackerStateError
from pynetstate.lifecycle import AppLifecycleState, LifecycleHub
from pynetstate.models.connectivity import ConnectivityState
from pynetstate.sources.base import ConnectivitySource, RawReading

_logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(slots=True)
class _PendingUpdate:
    """A raw reading waiting for the worker.

    ``future`` resolves to ``True`` when the reading produced a new state,
    ``False`` when it was discarded as a duplicate.
    """

    raw: tuple[Any, ...]
    future: asyncio.Future[bool]
    origin: str


class Subscription:
    """Live stream of distinct states published after registration.

    Iterate with ``async for``. Iteration ends once the subscription is
    closed or the tracker is disposed, after any states already queued.
    """

    def __init__(self, tracker: ConnectivityTracker) -> None:
        self._tracker = tracker
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """States delivered but not yet consumed."""
        # Once closed, exactly one end marker sits in the queue.
        return self._queue.qsize() - (1 if self._closed else 0)

    def _deliver(self, state: ConnectivityState) -> None:
        if not self._closed:
            self._queue.put_nowait(state)

    def _terminate(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        self._tracker._remove_subscription(self)  # noqa: SLF001
        self._terminate()

    async def get(self) -> ConnectivityState:
        """Wait for the next state; raise ``StopAsyncIteration`` once closed."""
        return await self.__anext__()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ConnectivityState:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker so later reads also stop.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        state: ConnectivityState = item
        return state

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()


class ConnectivityTracker:
    """Tracks connectivity from a raw source and publishes distinct changes.

    Usage::

        async with ConnectivityTracker(source, lifecycle=hub) as tracker:
            print(tracker.current)
            async for state in tracker.subscribe():
                ...

    Pushed readings and resume polls go through one queue consumed by a
    single worker task, so each update (normalize, compare, replace,
    publish) completes before the next one starts.
    """

    def __init__(
        self,
        source: ConnectivitySource,
        *,
        lifecycle: LifecycleHub | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._source = source
        self._lifecycle = lifecycle
        self._logger = logger or _logger
        self._current = ConnectivityState.unknown()
        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[[ConnectivityState], None]] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[_PendingUpdate] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._cancel_push: Callable[[], None] | None = None
        self._started = False
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ConnectivityTracker:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.dispose()

    @property
    def current(self) -> ConnectivityState:
        """Latest known state; ``unknown()`` until the first reading."""
        return self._current

    @property
    def is_running(self) -> bool:
        return self._started and not self._disposed

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def start(self) -> ConnectivityState:
        """Attach to the source and apply the initial reading.

        A failing initial pull propagates; the tracker is left unstarted
        so the caller may retry.
        """
        if self._disposed:
            raise TrackerDisposedError("Tracker has been disposed")
        if self._started:
            raise TrackerStateError("Tracker already started")

        self._started = True
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._run(), name="pynetstate-tracker")
        if self._lifecycle is not None:
            self._lifecycle.add_resume_handler(self.on_resume)

        try:
            self._cancel_push = self._source.subscribe(self._on_push)
            self._logger.debug("Connectivity tracker started")
            await self._pull_and_apply()
        except BaseException:
            self._logger.debug("Tracker start failed", exc_info=True)
            await self._release()
            self._started = False
            raise
        return self._current

    async def dispose(self) -> None:
        """Detach from the source and end every open subscription.

        Idempotent. ``current`` keeps returning the last known state.
        """
        if self._disposed:
            return
        self._disposed = True
        await self._release()
        for subscription in list(self._subscriptions):
            subscription._terminate()  # noqa: SLF001
        self._subscriptions.clear()
        self._listeners.clear()
        self._logger.debug("Connectivity tracker disposed with state %s", self._current)

    async def _release(self) -> None:
        if self._lifecycle is not None:
            self._lifecycle.remove_resume_handler(self.on_resume)

        cancel = self._cancel_push
        self._cancel_push = None
        if cancel is not None:
            cancel()

        worker = self._worker
        self._worker = None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        queue = self._queue
        self._queue = None
        if queue is not None:
            # Unblock anyone awaiting readings that will never be processed.
            while not queue.empty():
                update = queue.get_nowait()
                if not update.future.done():
                    update.future.set_result(False)

    def _require_running(self) -> None:
        if self._disposed:
            raise TrackerDisposedError("Tracker has been disposed")
        if not self._started:
            raise TrackerStateError("Tracker not started. Use 'await tracker.start()' first")

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self) -> Subscription:
        """Register a consumer of every later distinct state."""
        if self._disposed:
            raise TrackerDisposedError("Cannot subscribe to a disposed tracker")
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with contextlib.suppress(ValueError):
            self._subscriptions.remove(subscription)

    def add_listener(self, callback: Callable[[ConnectivityState], None]) -> Callable[[], None]:
        """Call *callback* synchronously for every later distinct state.

        Returns a function that removes the listener.
        """
        if self._disposed:
            raise TrackerDisposedError("Cannot add a listener to a disposed tracker")
        self._listeners.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _remove

    async def watch(self) -> AsyncIterator[ConnectivityState]:
        """Yield the current state, then every later change."""
        async with self.subscribe() as subscription:
            yield self._current
            async for state in subscription:
                yield state

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------

    async def on_resume(self) -> bool:
        """Re-poll the source after the app returns to the foreground.

        Returns whether a new state was published.
        """
        self._require_running()
        self._logger.debug("Resume poll requested")
        return await self._pull_and_apply()

    async def handle_lifecycle_state(self, state: AppLifecycleState | str) -> bool:
        if AppLifecycleState(state) == AppLifecycleState.RESUMED:
            return await self.on_resume()
        return False

    async def _pull_and_apply(self) -> bool:
        raw = await self._source.pull()
        if self._disposed or self._queue is None:
            return False
        future = self._enqueue(raw, origin="pull")
        return await future

    def _enqueue(self, raw: RawReading, *, origin: str) -> asyncio.Future[bool]:
        loop = self._loop or asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()
        if self._disposed or self._queue is None:
            future.set_result(False)
            return future
        self._queue.put_nowait(_PendingUpdate(raw=tuple(raw), future=future, origin=origin))
        return future

    def _on_push(self, raw: RawReading) -> asyncio.Future[bool]:
        if self._disposed:
            self._logger.debug("Ignoring connectivity push after dispose: %s", list(raw))
        future = self._enqueue(raw, origin="push")
        if not future.done():
            future.add_done_callback(self._log_push_failure)
        return future

    def _log_push_failure(self, future: asyncio.Future[bool]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._logger.error("Failed to process pushed connectivity reading", exc_info=exc)

    async def _run(self) -> None:
        queue = self._queue
        assert queue is not None  # noqa: S101
        while True:
            update = await queue.get()
            try:
                changed = self._apply(update.raw, origin=update.origin)
            except Exception as exc:  # delivered to whoever awaits the reading
                if not update.future.done():
                    update.future.set_exception(exc)
            else:
                if not update.future.done():
                    update.future.set_result(changed)
            finally:
                queue.task_done()

    def _apply(self, raw: tuple[Any, ...], *, origin: str) -> bool:
        state = ConnectivityState.from_raw(raw)
        if state == self._current:
            self._logger.debug("Connectivity unchanged (%s): %s", origin, state)
            return False

        previous = self._current
        self._current = state
        self._logger.debug("Connectivity changed (%s): %s -> %s", origin, previous, state)
        self._publish(state)
        return True

    def _publish(self, state: ConnectivityState) -> None:
        for subscription in list(self._subscriptions):
            subscription._deliver(state)  # noqa: SLF001
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                self._logger.warning("Connectivity listener %r failed", listener, exc_info=True)
