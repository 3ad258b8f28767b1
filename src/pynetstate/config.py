"""Runtime configuration for pynetstate sources."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pynetstate.exceptions import NetstateConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise NetstateConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class NetstateConfig:
    """Source configuration.

    Parameters
    ----------
    poll_interval : float
        Seconds between reads of the interface table by the sysfs source.
    sysfs_root : str
        Directory listing network interfaces (one entry per interface).
    mqtt_host : str or None
        Broker host for the MQTT source. ``None`` disables it.
    mqtt_port : int
        Broker port.
    mqtt_topic : str
        Topic carrying connectivity reports.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_username : str or None
        Optional broker username.
    mqtt_password : str or None
        Optional broker password.
    mqtt_tls : bool
        Enable TLS with the system CA bundle.
    mqtt_pull_timeout : float
        Seconds ``pull()`` waits for the first report (usually the
        retained message) before failing.
    """

    poll_interval: float = 5.0
    sysfs_root: str = "/sys/class/net"
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_topic: str = "netstate/connectivity"
    mqtt_keepalive: int = 60
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = False
    mqtt_pull_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise NetstateConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if not 0 < self.mqtt_port < 65536:
            raise NetstateConfigError(f"mqtt_port out of range: {self.mqtt_port}")
        if self.mqtt_pull_timeout < 0:
            raise NetstateConfigError(f"mqtt_pull_timeout must be >= 0, got {self.mqtt_pull_timeout}")
        if not self.mqtt_topic.strip():
            raise NetstateConfigError("mqtt_topic must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> NetstateConfig:
        """Create configuration from ``NETSTATE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "NETSTATE_SYSFS_ROOT": "sysfs_root",
            "NETSTATE_MQTT_HOST": "mqtt_host",
            "NETSTATE_MQTT_TOPIC": "mqtt_topic",
            "NETSTATE_MQTT_USERNAME": "mqtt_username",
            "NETSTATE_MQTT_PASSWORD": "mqtt_password",
        }
        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "NETSTATE_POLL_INTERVAL": ("poll_interval", float),
            "NETSTATE_MQTT_PORT": ("mqtt_port", int),
            "NETSTATE_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "NETSTATE_MQTT_PULL_TIMEOUT": ("mqtt_pull_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("NETSTATE_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
