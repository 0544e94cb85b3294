"""
techdash.lifecycle.shutdown

Shutdown coordinator driven by termination signals.

Responsibilities:
- Turn the first SIGINT/SIGTERM into exactly one teardown pass.
- Sequence teardown: stop accepting, drain audit writes, stop subsystems
  (scheduler before persistence), close the listener.
- Bound every step by what remains of one shutdown deadline.
"""

from __future__ import annotations

import asyncio
import enum
import signal
import time
from typing import Protocol

from techdash.lifecycle.registry import ShutdownReport, SubsystemRegistry
from techdash.observability.logging import get_logger

log = get_logger(__name__)


class Listener(Protocol):
    """The server side of the process: its listening socket(s)."""

    def stop_accepting(self) -> None: ...

    async def close(self) -> None: ...


class Drainable(Protocol):
    async def drain(self, timeout: float) -> None: ...


class CoordinatorState(enum.StrEnum):
    running = "RUNNING"
    draining = "DRAINING"
    stopped = "STOPPED"


def _signal_name(sig: int | None) -> str:
    if sig is None:
        return "manual"
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


class ShutdownCoordinator:
    def __init__(
        self,
        *,
        registry: SubsystemRegistry,
        listener: Listener,
        deadline: float,
        audit: Drainable | None = None,
    ) -> None:
        self._registry = registry
        self._listener = listener
        self._deadline = deadline
        self._audit = audit

        self._state = CoordinatorState.running
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[ShutdownReport] | None = None
        self._stopped = asyncio.Event()
        self._report: ShutdownReport | None = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def trigger(self, sig: int | None = None) -> bool:
        """
        Start teardown. Safe to call from a signal handler.

        Returns False (and does nothing) when teardown already started.
        """

        if self._state is not CoordinatorState.running:
            log.info("shutdown_signal_ignored", signal=_signal_name(sig), state=self._state.value)
            return False

        self._state = CoordinatorState.draining
        log.warning("shutdown_triggered", signal=_signal_name(sig))
        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon_threadsafe(self._start)
        return True

    def _start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run(), name="shutdown")

    async def wait_stopped(self) -> ShutdownReport:
        await self._stopped.wait()
        assert self._report is not None
        return self._report

    async def _run(self) -> ShutdownReport:
        ends_at = time.monotonic() + self._deadline
        report = ShutdownReport()

        def remaining() -> float:
            return max(ends_at - time.monotonic(), 0.0)

        try:
            self._listener.stop_accepting()

            if self._audit is not None:
                try:
                    await asyncio.wait_for(self._audit.drain(remaining()), timeout=remaining())
                except TimeoutError:
                    log.warning("audit_drain_timeout")

            # Registration order puts the scheduler last and persistence early, so
            # reverse-order teardown stops scheduled work before persistence closes.
            report = await self._registry.shutdown_all(remaining())

            try:
                await asyncio.wait_for(self._listener.close(), timeout=remaining())
            except TimeoutError:
                log.warning("listener_close_timeout")
        except Exception:
            log.exception("shutdown_failed")
            raise
        finally:
            self._state = CoordinatorState.stopped
            self._report = report
            self._stopped.set()

        log.info("shutdown_complete", clean=report.clean, order=report.order())
        return report


# --- Module Notes -----------------------------------------------------------
# Exiting the process is left to the entry point (`techdash.api.__main__`), which
# awaits `wait_stopped()` and returns status 0.
