"""Raw connectivity source interface.

A source provides two things: an on-demand ``pull()`` of the current raw
identifiers, and a push feed delivering a fresh reading whenever the
platform reports one. The tracker normalizes both through the same path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Protocol

from pynetstate.models.connectivity import RawConnectivity

RawReading = Sequence[RawConnectivity | str]

PushCallback = Callable[[RawReading], "asyncio.Future[bool]"]
"""Receives one reading; returns a future resolved once it is processed."""


class ConnectivitySource(Protocol):
    """Structural interface for raw connectivity sources.

    Readings must be delivered to the push callback on the event loop
    thread. Sources fed from other threads hop over with
    ``loop.call_soon_threadsafe``.
    """

    async def pull(self) -> RawReading: ...

    def subscribe(self, callback: PushCallback) -> Callable[[], None]:
        """Register *callback* for pushed readings; return a canceller."""
        ...
