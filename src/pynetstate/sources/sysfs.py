"""Linux connectivity source backed by ``/sys/class/net``.

Each interface directory is classified into a raw identifier. Only
interfaces that are up count; tunnels usually report operstate
``unknown`` and are taken as up when they have carrier.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pynetstate.config import NetstateConfig
from pynetstate.exceptions import ConnectivitySourceError
from pynetstate.models.connectivity import RawConnectivity
from pynetstate.sources.base import PushCallback, RawReading

_logger = logging.getLogger(__name__)

# include/uapi/linux/if_arp.h
ARPHRD_ETHER = 1
ARPHRD_LOOPBACK = 772
ARPHRD_NONE = 65534

_IGNORED_PREFIXES: tuple[str, ...] = ("lo", "docker", "veth", "br-", "virbr", "vnet", "dummy")
_MOBILE_PREFIXES: tuple[str, ...] = ("wwan", "wwp", "rmnet", "ccmni", "ppp", "usb")
_VPN_PREFIXES: tuple[str, ...] = ("tun", "tap", "wg", "utun", "ipsec", "tailscale", "zt", "nordlynx")
_BLUETOOTH_PREFIXES: tuple[str, ...] = ("bnep", "bt-pan")


@dataclass(frozen=True)
class InterfaceInfo:
    """Attributes read for one interface directory."""

    name: str
    operstate: str
    arphrd_type: int | None = None
    devtype: str | None = None
    wireless: bool = False
    carrier: bool | None = None

    @property
    def is_active(self) -> bool:
        if self.operstate == "up":
            return True
        return self.operstate == "unknown" and bool(self.carrier)


def _read_attr(path: Path) -> str | None:
    try:
        return path.read_text(encoding="ascii", errors="replace").strip()
    except OSError:
        # carrier raises EINVAL on a down link; interfaces can vanish mid-scan.
        return None


def _read_devtype(path: Path) -> str | None:
    uevent = _read_attr(path / "uevent")
    if not uevent:
        return None
    for line in uevent.splitlines():
        key, _, value = line.partition("=")
        if key == "DEVTYPE":
            return value.strip() or None
    return None


def read_interface(path: Path) -> InterfaceInfo:
    type_text = _read_attr(path / "type")
    carrier_text = _read_attr(path / "carrier")
    return InterfaceInfo(
        name=path.name,
        operstate=(_read_attr(path / "operstate") or "unknown").lower(),
        arphrd_type=int(type_text) if type_text and type_text.isdigit() else None,
        devtype=_read_devtype(path),
        wireless=(path / "wireless").is_dir() or (path / "phy80211").exists(),
        carrier=None if carrier_text is None else carrier_text == "1",
    )


def read_interfaces(root: Path) -> list[InterfaceInfo]:
    """Read every interface below *root*, sorted by name."""
    try:
        entries = sorted(root.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise ConnectivitySourceError(f"Cannot list interfaces in {root}: {exc}", source="sysfs") from exc
    return [read_interface(entry) for entry in entries]


def classify_interface(info: InterfaceInfo) -> RawConnectivity | None:
    """Map an interface to a raw identifier, or ``None`` to ignore it."""
    name = info.name
    if info.arphrd_type == ARPHRD_LOOPBACK or name.startswith(_IGNORED_PREFIXES):
        return None
    if info.devtype in ("bridge", "vlan", "bond"):
        return None
    if info.wireless or info.devtype == "wlan":
        return RawConnectivity.WIFI
    if info.devtype == "wwan" or name.startswith(_MOBILE_PREFIXES):
        return RawConnectivity.MOBILE
    if info.devtype in ("wireguard", "tun") or name.startswith(_VPN_PREFIXES):
        return RawConnectivity.VPN
    if info.devtype == "bluetooth" or name.startswith(_BLUETOOTH_PREFIXES):
        return RawConnectivity.BLUETOOTH
    if info.arphrd_type == ARPHRD_ETHER:
        return RawConnectivity.ETHERNET
    return RawConnectivity.OTHER


def snapshot_from_interfaces(infos: list[InterfaceInfo]) -> list[RawConnectivity]:
    """Distinct identifiers of the active interfaces, ``[none]`` if there are none."""
    result: list[RawConnectivity] = []
    for info in infos:
        if not info.is_active:
            continue
        raw = classify_interface(info)
        if raw is not None and raw not in result:
            result.append(raw)
    return result or [RawConnectivity.NONE]


class SysfsConnectivitySource:
    """Polls the interface table and pushes readings when they change."""

    def __init__(
        self,
        *,
        root: str | Path = "/sys/class/net",
        poll_interval: float = 5.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._root = Path(root)
        self._poll_interval = poll_interval
        self._logger = logger or _logger
        self._listeners: list[PushCallback] = []
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(cls, config: NetstateConfig) -> SysfsConnectivitySource:
        return cls(root=config.sysfs_root, poll_interval=config.poll_interval)

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def read(self) -> list[RawConnectivity]:
        """Blocking read of the current identifiers."""
        return snapshot_from_interfaces(read_interfaces(self._root))

    async def pull(self) -> RawReading:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read)

    def subscribe(self, callback: PushCallback) -> Callable[[], None]:
        self._listeners.append(callback)
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._poll(), name="pynetstate-sysfs-poll")
            self._logger.debug("sysfs polling started root=%s interval=%s", self._root, self._poll_interval)

        def _cancel() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)
            if not self._listeners:
                self._stop()

        return _cancel

    def _stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            self._logger.debug("sysfs polling stopped")

    async def _poll(self) -> None:
        last: list[RawConnectivity] | None = None
        while True:
            try:
                reading = list(await self.pull())
            except ConnectivitySourceError:
                self._logger.warning("sysfs connectivity poll failed", exc_info=True)
            else:
                if reading != last:
                    last = reading
                    self._logger.debug("sysfs reading changed: %s", [raw.value for raw in reading])
                    for callback in list(self._listeners):
                        callback(reading)
            await asyncio.sleep(self._poll_interval)
