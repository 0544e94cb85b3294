"""
tests.test_registry

Subsystem registry: ordered startup, abort on failure, reverse-order bounded shutdown.
"""

from __future__ import annotations

import asyncio

import pytest

from techdash.errors import StartupFailure
from techdash.lifecycle.registry import LifecycleState, StopOutcome, Subsystem, SubsystemRegistry


class Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []


class FakeSubsystem:
    def __init__(
        self,
        name: str,
        recorder: Recorder,
        *,
        fail_init: bool = False,
        fail_shutdown: bool = False,
        shutdown_delay: float = 0.0,
    ) -> None:
        self.name = name
        self._recorder = recorder
        self._fail_init = fail_init
        self._fail_shutdown = fail_shutdown
        self._shutdown_delay = shutdown_delay
        self.shutdown_budget: float | None = None

    async def init(self) -> None:
        self._recorder.calls.append(f"init:{self.name}")
        if self._fail_init:
            raise ConnectionError(f"{self.name} unavailable")

    async def shutdown(self, timeout: float) -> None:
        self.shutdown_budget = timeout
        self._recorder.calls.append(f"shutdown:{self.name}")
        if self._shutdown_delay:
            await asyncio.sleep(self._shutdown_delay)
        if self._fail_shutdown:
            raise RuntimeError("boom")


def _registry(recorder: Recorder, *subsystems: FakeSubsystem) -> SubsystemRegistry:
    registry = SubsystemRegistry()
    for s in subsystems:
        registry.register(s)
    return registry


def test_fake_subsystem_satisfies_protocol() -> None:
    assert isinstance(FakeSubsystem("a", Recorder()), Subsystem)


def test_duplicate_names_are_rejected() -> None:
    rec = Recorder()
    registry = _registry(rec, FakeSubsystem("a", rec))
    with pytest.raises(ValueError):
        registry.register(FakeSubsystem("a", rec))


@pytest.mark.asyncio
async def test_init_runs_in_registration_order() -> None:
    rec = Recorder()
    registry = _registry(rec, *(FakeSubsystem(n, rec) for n in ("log", "db", "cache")))

    await registry.init_all()

    assert rec.calls == ["init:log", "init:db", "init:cache"]
    assert registry.ready
    assert registry.status() == {"log": "READY", "db": "READY", "cache": "READY"}


@pytest.mark.asyncio
async def test_init_aborts_on_first_failure() -> None:
    rec = Recorder()
    registry = _registry(
        rec,
        FakeSubsystem("log", rec),
        FakeSubsystem("db", rec, fail_init=True),
        FakeSubsystem("cache", rec),
    )

    with pytest.raises(StartupFailure) as exc_info:
        await registry.init_all()

    assert exc_info.value.subsystem == "db"
    assert isinstance(exc_info.value.cause, ConnectionError)
    # Later subsystems are never initialized.
    assert rec.calls == ["init:log", "init:db"]
    assert registry.state("log") is LifecycleState.ready
    assert registry.state("db") is LifecycleState.uninitialized
    assert registry.state("cache") is LifecycleState.uninitialized
    assert not registry.ready


@pytest.mark.asyncio
async def test_shutdown_after_aborted_startup_only_stops_ready_subsystems() -> None:
    rec = Recorder()
    registry = _registry(
        rec,
        FakeSubsystem("log", rec),
        FakeSubsystem("db", rec, fail_init=True),
        FakeSubsystem("cache", rec),
    )
    with pytest.raises(StartupFailure):
        await registry.init_all()

    report = await registry.shutdown_all(1.0)

    assert report.order() == ["log"]
    assert rec.calls[-1] == "shutdown:log"


@pytest.mark.asyncio
async def test_shutdown_runs_in_reverse_order() -> None:
    rec = Recorder()
    registry = _registry(rec, *(FakeSubsystem(n, rec) for n in ("log", "db", "scheduler")))
    await registry.init_all()
    rec.calls.clear()

    report = await registry.shutdown_all(3.0)

    assert rec.calls == ["shutdown:scheduler", "shutdown:db", "shutdown:log"]
    assert report.clean
    assert set(registry.status().values()) == {"STOPPED"}


@pytest.mark.asyncio
async def test_shutdown_is_idempotent() -> None:
    rec = Recorder()
    registry = _registry(rec, FakeSubsystem("a", rec), FakeSubsystem("b", rec))
    await registry.init_all()
    rec.calls.clear()

    first, second = await asyncio.gather(registry.shutdown_all(1.0), registry.shutdown_all(1.0))
    third = await registry.shutdown_all(1.0)

    assert rec.calls == ["shutdown:b", "shutdown:a"]
    assert first is second is third


@pytest.mark.asyncio
async def test_overrunning_subsystem_is_forced_and_others_still_stop() -> None:
    rec = Recorder()
    slow = FakeSubsystem("slow", rec, shutdown_delay=5.0)
    registry = _registry(rec, FakeSubsystem("log", rec), slow)
    await registry.init_all()

    report = await registry.shutdown_all(0.2)

    outcomes = {s.name: s.outcome for s in report.stops}
    assert outcomes == {"slow": StopOutcome.forced, "log": StopOutcome.stopped}
    assert not report.clean
    # The budget is shared among what is left to stop.
    assert slow.shutdown_budget is not None and slow.shutdown_budget <= 0.1 + 1e-6


@pytest.mark.asyncio
async def test_failing_shutdown_is_reported_and_does_not_stop_the_pass() -> None:
    rec = Recorder()
    registry = _registry(
        rec, FakeSubsystem("log", rec), FakeSubsystem("bad", rec, fail_shutdown=True)
    )
    await registry.init_all()

    report = await registry.shutdown_all(1.0)

    assert [(s.name, s.outcome) for s in report.stops] == [
        ("bad", StopOutcome.failed),
        ("log", StopOutcome.stopped),
    ]
    assert registry.state("bad") is LifecycleState.stopped


# --- Module Notes -----------------------------------------------------------
# Fake subsystems keep these tests independent of SQLite and logging setup.
