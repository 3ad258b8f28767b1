#!/usr/bin/env python3
"""Print connectivity changes as the tracker publishes them.

Reads from ``/sys/class/net`` by default, or from an MQTT topic with
``--source mqtt`` (broker settings come from ``NETSTATE_MQTT_*``).

Use ``--resume-every`` to simulate the app returning to the foreground
periodically, which forces a fresh poll through the lifecycle hub.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pynetstate import (  # noqa: E402
    AppLifecycleState,
    ConnectivityState,
    ConnectivityTracker,
    LifecycleHub,
    MqttConnectivitySource,
    NetstateConfig,
    NetstateError,
    SysfsConnectivitySource,
)

_LOG = logging.getLogger("watch_connectivity")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch network connectivity changes.",
    )
    parser.add_argument(
        "--source",
        choices=("sysfs", "mqtt"),
        default="sysfs",
        help="Raw connectivity source.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--resume-every",
        type=float,
        default=0.0,
        help="Report a lifecycle resume every N seconds (0 = never).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON object per state.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_state(state: ConnectivityState, *, as_json: bool) -> None:
    ts_text = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
    if as_json:
        print(json.dumps({"at": ts_text, "kinds": [kind.value for kind in state.kinds]}))
    else:
        print(f"[watch] {ts_text} {state}")


async def _resume_loop(hub: LifecycleHub, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        await hub.notify(AppLifecycleState.PAUSED)
        await hub.notify(AppLifecycleState.RESUMED)


async def _watch(args: argparse.Namespace) -> int:
    config = NetstateConfig.from_env()
    hub = LifecycleHub()
    _LOG.debug("Watching %s source", args.source)

    mqtt_source: MqttConnectivitySource | None = None
    if args.source == "mqtt":
        mqtt_source = MqttConnectivitySource.from_config(config)
        await mqtt_source.start()
        source: SysfsConnectivitySource | MqttConnectivitySource = mqtt_source
    else:
        source = SysfsConnectivitySource.from_config(config)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)
    if args.duration > 0:
        loop.call_later(args.duration, stop.set)

    resume_task: asyncio.Task[None] | None = None
    try:
        async with ConnectivityTracker(source, lifecycle=hub) as tracker:
            if args.resume_every > 0:
                resume_task = asyncio.create_task(_resume_loop(hub, args.resume_every))

            async def _consume() -> None:
                async for state in tracker.watch():
                    _print_state(state, as_json=args.json)

            consumer = asyncio.create_task(_consume())
            await stop.wait()
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
    finally:
        if resume_task is not None:
            resume_task.cancel()
        if mqtt_source is not None:
            await mqtt_source.stop()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_watch(args))
    except NetstateError as exc:
        print(f"[watch] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
