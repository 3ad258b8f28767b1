"""pynetstate - Async network connectivity tracker."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynetstate")
except PackageNotFoundError:
    __version__ = "0+local"
from pynetstate.config import NetstateConfig
from pynetstate.exceptions import (
    ConnectivitySourceError,
    NetstateConfigError,
    NetstateError,
    TrackerDisposedError,
    TrackerStateError,
    UnmappedConnectivityError,
)
from pynetstate.lifecycle import AppLifecycleState, LifecycleHub
from pynetstate.models import ConnectivityKind, ConnectivityState, RawConnectivity
from pynetstate.sources import (
    ConnectivitySource,
    MqttConnectivitySource,
    SysfsConnectivitySource,
)
from pynetstate.tracker import ConnectivityTracker, Subscription

__all__ = [
    "__version__",
    "AppLifecycleState",
    "ConnectivityKind",
    "ConnectivitySource",
    "ConnectivitySourceError",
    "ConnectivityState",
    "ConnectivityTracker",
    "LifecycleHub",
    "MqttConnectivitySource",
    "NetstateConfig",
    "NetstateConfigError",
    "NetstateError",
    "RawConnectivity",
    "Subscription",
    "SysfsConnectivitySource",
    "TrackerDisposedError",
    "TrackerStateError",
    "UnmappedConnectivityError",
]
