from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pynetstate.config import NetstateConfig
from pynetstate.exceptions import ConnectivitySourceError
from pynetstate.models.connectivity import ConnectivityKind, RawConnectivity
from pynetstate.sources.sysfs import (
    ARPHRD_ETHER,
    ARPHRD_LOOPBACK,
    ARPHRD_NONE,
    InterfaceInfo,
    SysfsConnectivitySource,
    classify_interface,
    read_interfaces,
    snapshot_from_interfaces,
)
from pynetstate.tracker import ConnectivityTracker


def _make_iface(
    root: Path,
    name: str,
    *,
    operstate: str = "up",
    arphrd: int = ARPHRD_ETHER,
    devtype: str | None = None,
    wireless: bool = False,
    carrier: str | None = "1",
) -> Path:
    path = root / name
    path.mkdir(parents=True)
    (path / "operstate").write_text(f"{operstate}\n")
    (path / "type").write_text(f"{arphrd}\n")
    uevent = f"INTERFACE={name}\n"
    if devtype:
        uevent += f"DEVTYPE={devtype}\n"
    (path / "uevent").write_text(uevent)
    if wireless:
        (path / "wireless").mkdir()
    if carrier is not None:
        (path / "carrier").write_text(f"{carrier}\n")
    return path


async def _wait_until(predicate, timeout: float = 2.0) -> None:  # noqa: ANN001
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.mark.parametrize(
    ("info", "expected"),
    [
        (InterfaceInfo(name="lo", operstate="unknown", arphrd_type=ARPHRD_LOOPBACK), None),
        (InterfaceInfo(name="docker0", operstate="up", arphrd_type=ARPHRD_ETHER), None),
        (InterfaceInfo(name="br0", operstate="up", arphrd_type=ARPHRD_ETHER, devtype="bridge"), None),
        (InterfaceInfo(name="wlp2s0", operstate="up", arphrd_type=ARPHRD_ETHER, wireless=True), RawConnectivity.WIFI),
        (InterfaceInfo(name="wlan0", operstate="up", arphrd_type=ARPHRD_ETHER, devtype="wlan"), RawConnectivity.WIFI),
        (InterfaceInfo(name="wwan0", operstate="up", arphrd_type=ARPHRD_NONE), RawConnectivity.MOBILE),
        (InterfaceInfo(name="rmnet_data0", operstate="up", arphrd_type=ARPHRD_NONE), RawConnectivity.MOBILE),
        (InterfaceInfo(name="wg0", operstate="unknown", arphrd_type=ARPHRD_NONE), RawConnectivity.VPN),
        (InterfaceInfo(name="tun0", operstate="unknown", arphrd_type=ARPHRD_NONE), RawConnectivity.VPN),
        (InterfaceInfo(name="bnep0", operstate="up", arphrd_type=ARPHRD_ETHER), RawConnectivity.BLUETOOTH),
        (InterfaceInfo(name="enp3s0", operstate="up", arphrd_type=ARPHRD_ETHER), RawConnectivity.ETHERNET),
        (InterfaceInfo(name="ib0", operstate="up", arphrd_type=32), RawConnectivity.OTHER),
    ],
)
def test_classify_interface(info: InterfaceInfo, expected: RawConnectivity | None) -> None:
    assert classify_interface(info) == expected


def test_snapshot_skips_inactive_and_deduplicates() -> None:
    infos = [
        InterfaceInfo(name="eth0", operstate="up", arphrd_type=ARPHRD_ETHER),
        InterfaceInfo(name="eth1", operstate="up", arphrd_type=ARPHRD_ETHER),
        InterfaceInfo(name="tun0", operstate="unknown", arphrd_type=ARPHRD_NONE, carrier=True),
        InterfaceInfo(name="wlan0", operstate="down", arphrd_type=ARPHRD_ETHER, wireless=True),
    ]
    assert snapshot_from_interfaces(infos) == [RawConnectivity.ETHERNET, RawConnectivity.VPN]


def test_snapshot_without_active_interfaces_is_none() -> None:
    infos = [InterfaceInfo(name="lo", operstate="unknown", arphrd_type=ARPHRD_LOOPBACK, carrier=True)]
    assert snapshot_from_interfaces(infos) == [RawConnectivity.NONE]
    assert snapshot_from_interfaces([]) == [RawConnectivity.NONE]


def test_read_interfaces_from_tree(tmp_path: Path) -> None:
    _make_iface(tmp_path, "wlan0", wireless=True)
    _make_iface(tmp_path, "eth0", operstate="down", carrier=None)
    _make_iface(tmp_path, "wg0", operstate="unknown", arphrd=ARPHRD_NONE, devtype="wireguard")

    infos = {info.name: info for info in read_interfaces(tmp_path)}

    assert [name for name in infos] == ["eth0", "wg0", "wlan0"]
    assert infos["wlan0"].wireless
    assert infos["eth0"].carrier is None
    assert not infos["eth0"].is_active
    assert infos["wg0"].devtype == "wireguard"
    assert infos["wg0"].is_active


def test_read_interfaces_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(ConnectivitySourceError) as excinfo:
        read_interfaces(tmp_path / "missing")
    assert excinfo.value.source == "sysfs"


@pytest.mark.asyncio
async def test_pull_reads_tree(tmp_path: Path) -> None:
    _make_iface(tmp_path, "lo", operstate="unknown", arphrd=ARPHRD_LOOPBACK)
    _make_iface(tmp_path, "eth0")
    source = SysfsConnectivitySource(root=tmp_path)

    assert list(await source.pull()) == [RawConnectivity.ETHERNET]


@pytest.mark.asyncio
async def test_from_config_uses_root_and_interval(tmp_path: Path) -> None:
    config = NetstateConfig(sysfs_root=str(tmp_path), poll_interval=0.5)
    source = SysfsConnectivitySource.from_config(config)
    assert list(await source.pull()) == [RawConnectivity.NONE]


@pytest.mark.asyncio
async def test_tracker_follows_polled_changes(tmp_path: Path) -> None:
    _make_iface(tmp_path, "eth0")
    wlan = _make_iface(tmp_path, "wlan0", operstate="down", wireless=True)
    source = SysfsConnectivitySource(root=tmp_path, poll_interval=0.01)

    tracker = ConnectivityTracker(source)
    await tracker.start()
    assert tracker.current.kinds == (ConnectivityKind.ETHERNET,)
    assert source.is_polling

    (wlan / "operstate").write_text("up\n")
    await _wait_until(lambda: ConnectivityKind.WIFI in tracker.current)
    assert tracker.current.kind_set == {ConnectivityKind.ETHERNET, ConnectivityKind.WIFI}

    await tracker.dispose()
    assert not source.is_polling
