"""
techdash.lifecycle.registry

Ordered registry of stateful subsystems.

Responsibilities:
- Own every subsystem instance for the lifetime of the process.
- Initialize subsystems strictly in registration order, aborting on the first failure.
- Tear subsystems down in reverse order within a shared deadline, exactly once.
"""

from __future__ import annotations

import asyncio
import enum
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from techdash.errors import StartupFailure
from techdash.observability.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class Subsystem(Protocol):
    """
    Stateful service with an explicit init/shutdown contract.

    `init` raises on failure. `shutdown` receives the seconds it may spend and
    should stop within them; the registry cancels it when it overruns.
    """

    name: str

    async def init(self) -> None: ...

    async def shutdown(self, timeout: float) -> None: ...


class LifecycleState(enum.StrEnum):
    uninitialized = "UNINITIALIZED"
    ready = "READY"
    shutting_down = "SHUTTING_DOWN"
    stopped = "STOPPED"


class StopOutcome(enum.StrEnum):
    stopped = "STOPPED"
    forced = "FORCED"
    failed = "FAILED"


@dataclass(frozen=True, slots=True)
class SubsystemStop:
    name: str
    outcome: StopOutcome
    detail: str | None = None


@dataclass(slots=True)
class ShutdownReport:
    stops: list[SubsystemStop] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return all(s.outcome is StopOutcome.stopped for s in self.stops)

    def order(self) -> list[str]:
        return [s.name for s in self.stops]


class SubsystemRegistry:
    def __init__(self) -> None:
        self._subsystems: list[Subsystem] = []
        self._states: dict[str, LifecycleState] = {}
        self._shutdown_task: asyncio.Task[ShutdownReport] | None = None

    def register(self, subsystem: Subsystem) -> Subsystem:
        if subsystem.name in self._states:
            raise ValueError(f"subsystem {subsystem.name!r} already registered")
        if self._shutdown_task is not None:
            raise RuntimeError("registry is shutting down")
        self._subsystems.append(subsystem)
        self._states[subsystem.name] = LifecycleState.uninitialized
        return subsystem

    def __iter__(self) -> Iterator[Subsystem]:
        return iter(tuple(self._subsystems))

    def __len__(self) -> int:
        return len(self._subsystems)

    def get(self, name: str) -> Subsystem:
        for subsystem in self._subsystems:
            if subsystem.name == name:
                return subsystem
        raise KeyError(name)

    def state(self, name: str) -> LifecycleState:
        return self._states[name]

    def status(self) -> dict[str, str]:
        return {s.name: self._states[s.name].value for s in self._subsystems}

    @property
    def ready(self) -> bool:
        return bool(self._subsystems) and all(
            state is LifecycleState.ready for state in self._states.values()
        )

    async def init_all(self) -> None:
        for subsystem in self._subsystems:
            if self._states[subsystem.name] is LifecycleState.ready:
                continue
            try:
                await subsystem.init()
            except Exception as e:
                log.error("subsystem_init_failed", subsystem=subsystem.name, error=repr(e))
                raise StartupFailure(subsystem=subsystem.name, cause=e) from e
            self._states[subsystem.name] = LifecycleState.ready
            log.info("subsystem_initialized", subsystem=subsystem.name)

    async def shutdown_all(self, deadline: float) -> ShutdownReport:
        """
        Stop every READY subsystem in reverse registration order.

        `deadline` is the total budget in seconds. A second call, concurrent or
        later, awaits the first pass and returns its report.
        """

        if self._shutdown_task is None:
            self._shutdown_task = asyncio.get_running_loop().create_task(
                self._shutdown(deadline), name="subsystem-shutdown"
            )
        return await asyncio.shield(self._shutdown_task)

    async def _shutdown(self, deadline: float) -> ShutdownReport:
        report = ShutdownReport()
        ends_at = time.monotonic() + deadline
        pending = [
            s for s in reversed(self._subsystems) if self._states[s.name] is LifecycleState.ready
        ]

        for index, subsystem in enumerate(pending):
            # Each subsystem gets an equal share of whatever budget is left.
            remaining = max(ends_at - time.monotonic(), 0.0)
            share = remaining / (len(pending) - index)
            self._states[subsystem.name] = LifecycleState.shutting_down
            try:
                await asyncio.wait_for(subsystem.shutdown(share), timeout=share)
            except TimeoutError:
                log.warning("subsystem_forced_stop", subsystem=subsystem.name, budget=share)
                report.stops.append(
                    SubsystemStop(subsystem.name, StopOutcome.forced, f"exceeded {share:.3f}s")
                )
            except Exception as e:
                log.error("subsystem_shutdown_failed", subsystem=subsystem.name, error=repr(e))
                report.stops.append(SubsystemStop(subsystem.name, StopOutcome.failed, repr(e)))
            else:
                log.info("subsystem_stopped", subsystem=subsystem.name)
                report.stops.append(SubsystemStop(subsystem.name, StopOutcome.stopped))
            self._states[subsystem.name] = LifecycleState.stopped

        return report


# --- Module Notes -----------------------------------------------------------
# Subsystems that never reached READY (startup aborted before them) are skipped
# at shutdown; they hold nothing to release.
