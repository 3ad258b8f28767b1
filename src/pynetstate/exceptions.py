"""Custom exception hierarchy for pynetstate."""

from __future__ import annotations


class NetstateError(Exception):
    """Base exception for all pynetstate errors."""


class NetstateConfigError(NetstateError):
    """Invalid or missing configuration."""


class ConnectivitySourceError(NetstateError):
    """A raw connectivity source failed to produce a reading."""

    def __init__(self, message: str, *, source: str = "") -> None:
        self.source = source
        super().__init__(message)


class UnmappedConnectivityError(NetstateError, ValueError):
    """A source emitted a raw identifier outside the mapping table.

    This is a contract violation by the source, not a recoverable
    runtime condition.
    """

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unmapped raw connectivity identifier: {value!r}")


class TrackerStateError(NetstateError):
    """Tracker used out of order (e.g. resumed before start)."""


class TrackerDisposedError(TrackerStateError):
    """Tracker used after :meth:`ConnectivityTracker.dispose`."""
