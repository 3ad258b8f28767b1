"""Connectivity kinds, the raw identifier table, and the state value.

Equality of :class:`ConnectivityState` is set equality over its kinds:
``[wifi, vpn]`` equals ``[vpn, wifi]`` and ``[wifi, wifi]`` equals
``[wifi]``. The tuple itself keeps the order the source reported, which
is what ``str()`` shows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pynetstate.exceptions import UnmappedConnectivityError

_logger = logging.getLogger(__name__)


class ConnectivityKind(StrEnum):
    """Normalized interface type."""

    UNKNOWN = "unknown"
    """Nothing observed yet. Only valid as the initial value."""

    NONE = "none"
    """No active interface."""

    OTHER = "other"
    """Active interface of a type not listed here.

    Platforms that cannot tell VPN tunnels apart report them as this.
    """

    MOBILE = "mobile"
    WIFI = "wifi"
    ETHERNET = "ethernet"
    BLUETOOTH = "bluetooth"
    VPN = "vpn"


class RawConnectivity(StrEnum):
    """Identifiers a connectivity source may emit.

    Sources always report at least one of these, using ``none`` when no
    interface is active. There is no raw ``unknown``.
    """

    NONE = "none"
    OTHER = "other"
    MOBILE = "mobile"
    WIFI = "wifi"
    ETHERNET = "ethernet"
    BLUETOOTH = "bluetooth"
    VPN = "vpn"


RAW_TO_KIND: dict[RawConnectivity, ConnectivityKind] = {
    RawConnectivity.NONE: ConnectivityKind.NONE,
    RawConnectivity.OTHER: ConnectivityKind.OTHER,
    RawConnectivity.MOBILE: ConnectivityKind.MOBILE,
    RawConnectivity.WIFI: ConnectivityKind.WIFI,
    RawConnectivity.ETHERNET: ConnectivityKind.ETHERNET,
    RawConnectivity.BLUETOOTH: ConnectivityKind.BLUETOOTH,
    RawConnectivity.VPN: ConnectivityKind.VPN,
}


def to_kind(value: RawConnectivity | str) -> ConnectivityKind:
    """Map one raw identifier through :data:`RAW_TO_KIND`.

    Raises :class:`UnmappedConnectivityError` for anything outside the table.
    """
    try:
        raw = RawConnectivity(value)
    except ValueError as exc:
        raise UnmappedConnectivityError(value) from exc
    return RAW_TO_KIND[raw]


class ConnectivityState(BaseModel):
    """Immutable snapshot of the active connectivity kinds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kinds: tuple[ConnectivityKind, ...] = Field(..., min_length=1)
    """Kinds in the order the source reported them. Never empty."""

    @classmethod
    def unknown(cls) -> ConnectivityState:
        """The pre-observation default, ``[unknown]``."""
        return _UNKNOWN

    @classmethod
    def from_raw(cls, values: Iterable[RawConnectivity | str]) -> ConnectivityState:
        """Normalize a raw source reading into a state.

        An empty reading never comes from a well-behaved source; it is
        treated the same as an explicit ``[none]``.
        """
        kinds = [to_kind(value) for value in values]
        if not kinds:
            _logger.debug("Empty raw connectivity reading normalized to [none]")
            kinds = [ConnectivityKind.NONE]
        return cls(kinds=tuple(kinds))

    @property
    def kind_set(self) -> frozenset[ConnectivityKind]:
        return frozenset(self.kinds)

    @property
    def is_connected(self) -> bool:
        """Whether at least one real interface is active."""
        return any(kind not in (ConnectivityKind.NONE, ConnectivityKind.UNKNOWN) for kind in self.kinds)

    def copy_with(self, *, kinds: Iterable[ConnectivityKind] | None = None) -> ConnectivityState:
        return ConnectivityState(kinds=tuple(kinds) if kinds is not None else self.kinds)

    def __contains__(self, kind: object) -> bool:
        return kind in self.kinds

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ConnectivityState):
            return NotImplemented
        return self.kind_set == other.kind_set

    def __hash__(self) -> int:
        return hash(("ConnectivityState", self.kind_set))

    def __str__(self) -> str:
        return f"ConnectivityState:kinds=[{', '.join(kind.value for kind in self.kinds)}]"


_UNKNOWN = ConnectivityState(kinds=(ConnectivityKind.UNKNOWN,))
