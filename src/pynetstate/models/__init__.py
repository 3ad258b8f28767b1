"""Data models for connectivity state."""

from pynetstate.models.connectivity import (
    RAW_TO_KIND,
    ConnectivityKind,
    ConnectivityState,
    RawConnectivity,
    to_kind,
)

__all__ = [
    "ConnectivityKind",
    "ConnectivityState",
    "RAW_TO_KIND",
    "RawConnectivity",
    "to_kind",
]
