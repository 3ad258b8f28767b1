from __future__ import annotations

import pytest

from pynetstate.lifecycle import AppLifecycleState, LifecycleHub


@pytest.mark.asyncio
async def test_only_resumed_runs_handlers() -> None:
    hub = LifecycleHub()
    calls: list[str] = []

    async def _first() -> None:
        calls.append("first")

    async def _second() -> None:
        calls.append("second")

    hub.add_resume_handler(_first)
    hub.add_resume_handler(_second)

    for state in ("inactive", AppLifecycleState.HIDDEN, AppLifecycleState.PAUSED):
        await hub.notify(state)
    assert calls == []
    assert hub.state == AppLifecycleState.PAUSED

    await hub.notify("resumed")
    assert calls == ["first", "second"]


@pytest.mark.asyncio
async def test_removed_handler_not_called() -> None:
    hub = LifecycleHub()
    calls: list[str] = []

    async def _handler() -> None:
        calls.append("resume")

    hub.add_resume_handler(_handler)
    hub.remove_resume_handler(_handler)
    hub.remove_resume_handler(_handler)

    await hub.notify(AppLifecycleState.RESUMED)
    assert calls == []
    assert hub.handler_count == 0


@pytest.mark.asyncio
async def test_handler_failure_propagates() -> None:
    hub = LifecycleHub()

    async def _boom() -> None:
        raise RuntimeError("resume failed")

    hub.add_resume_handler(_boom)
    with pytest.raises(RuntimeError):
        await hub.notify(AppLifecycleState.RESUMED)


@pytest.mark.asyncio
async def test_unknown_state_rejected() -> None:
    with pytest.raises(ValueError):
        await LifecycleHub().notify("sleeping")
