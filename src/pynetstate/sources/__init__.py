"""Raw connectivity sources."""

from pynetstate.sources.base import ConnectivitySource, PushCallback, RawReading
from pynetstate.sources.mqtt import MqttConnectivitySource
from pynetstate.sources.sysfs import SysfsConnectivitySource

__all__ = [
    "ConnectivitySource",
    "MqttConnectivitySource",
    "PushCallback",
    "RawReading",
    "SysfsConnectivitySource",
]
