"""
tests.test_shutdown

Shutdown coordinator: one teardown pass per process, in a fixed order, within a deadline.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import pytest

from conftest import make_settings
from techdash.bootstrap import build_subsystems
from techdash.lifecycle.registry import SubsystemRegistry
from techdash.lifecycle.shutdown import CoordinatorState, ShutdownCoordinator


class Journal:
    def __init__(self) -> None:
        self.entries: list[str] = []


class FakeListener:
    def __init__(self, journal: Journal) -> None:
        self._journal = journal

    def stop_accepting(self) -> None:
        self._journal.entries.append("stop_accepting")

    async def close(self) -> None:
        self._journal.entries.append("close")


class FakeAudit:
    def __init__(self, journal: Journal) -> None:
        self._journal = journal

    async def drain(self, timeout: float) -> None:
        self._journal.entries.append("drain")


class JournaledSubsystem:
    def __init__(self, name: str, journal: Journal) -> None:
        self.name = name
        self._journal = journal

    async def init(self) -> None:
        pass

    async def shutdown(self, timeout: float) -> None:
        self._journal.entries.append(f"shutdown:{self.name}")


async def _coordinator(journal: Journal, deadline: float = 2.0) -> ShutdownCoordinator:
    registry = SubsystemRegistry()
    for name in ("log_sink", "persistence", "scheduler"):
        registry.register(JournaledSubsystem(name, journal))
    await registry.init_all()
    return ShutdownCoordinator(
        registry=registry,
        listener=FakeListener(journal),
        deadline=deadline,
        audit=FakeAudit(journal),
    )


@pytest.mark.asyncio
async def test_teardown_order() -> None:
    journal = Journal()
    coordinator = await _coordinator(journal)

    assert coordinator.trigger(signal.SIGTERM) is True
    report = await coordinator.wait_stopped()

    assert journal.entries == [
        "stop_accepting",
        "drain",
        "shutdown:scheduler",
        "shutdown:persistence",
        "shutdown:log_sink",
        "close",
    ]
    assert report.clean
    assert coordinator.state is CoordinatorState.stopped


@pytest.mark.asyncio
async def test_second_signal_is_ignored() -> None:
    journal = Journal()
    coordinator = await _coordinator(journal)

    assert coordinator.trigger(signal.SIGINT) is True
    assert coordinator.state is CoordinatorState.draining
    assert coordinator.trigger(signal.SIGTERM) is False
    await coordinator.wait_stopped()
    assert coordinator.trigger(signal.SIGTERM) is False

    assert journal.entries.count("stop_accepting") == 1
    assert journal.entries.count("shutdown:scheduler") == 1


@pytest.mark.asyncio
async def test_trigger_from_another_thread() -> None:
    journal = Journal()
    coordinator = await _coordinator(journal)
    coordinator.bind(asyncio.get_running_loop())

    await asyncio.to_thread(coordinator.trigger, signal.SIGTERM)
    report = await asyncio.wait_for(coordinator.wait_stopped(), timeout=2.0)

    assert report.order() == ["scheduler", "persistence", "log_sink"]


@pytest.mark.asyncio
async def test_slow_listener_close_does_not_exceed_deadline() -> None:
    journal = Journal()

    class StuckListener(FakeListener):
        async def close(self) -> None:
            await asyncio.sleep(30)

    registry = SubsystemRegistry()
    registry.register(JournaledSubsystem("persistence", journal))
    await registry.init_all()
    coordinator = ShutdownCoordinator(
        registry=registry, listener=StuckListener(journal), deadline=0.2
    )

    coordinator.trigger()
    report = await asyncio.wait_for(coordinator.wait_stopped(), timeout=2.0)

    assert report.order() == ["persistence"]
    assert coordinator.state is CoordinatorState.stopped


def test_scheduler_stops_before_persistence(tmp_path: Path) -> None:
    subsystems = build_subsystems(make_settings(tmp_path))

    names = [s.name for s in subsystems.registry]

    assert names == ["log_sink", "persistence", "cache", "event_bus", "realtime", "scheduler"]
    # Shutdown walks this list backwards.
    assert names.index("scheduler") > names.index("persistence")


# --- Module Notes -----------------------------------------------------------
# Process exit (status 0) is handled by `techdash.api.__main__.serve` once
# `wait_stopped()` returns.
