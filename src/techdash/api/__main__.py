"""
techdash.api.__main__

Entrypoint for running the dashboard via `python -m techdash.api`.

Responsibilities:
- Load settings and initialize every subsystem before listening (exit 1 on failure).
- Start uvicorn with structlog-compatible logging config.
- Route SIGINT/SIGTERM to the shutdown coordinator and exit 0 once it stops.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import threading
from types import FrameType
from typing import Any

import uvicorn
from uvicorn.server import HANDLED_SIGNALS

from techdash.api.app import create_app
from techdash.bootstrap import build_subsystems
from techdash.errors import StartupFailure
from techdash.lifecycle.shutdown import CoordinatorState, ShutdownCoordinator
from techdash.observability.logging import flush_logging, get_logger
from techdash.settings import Settings, get_settings

log = get_logger(__name__)


class CoordinatedServer(uvicorn.Server):
    """
    uvicorn server whose exit signals go to a `ShutdownCoordinator` instead of
    flipping `should_exit` directly.
    """

    def __init__(self, config: uvicorn.Config) -> None:
        super().__init__(config)
        self.coordinator: ShutdownCoordinator | None = None
        self.closed = asyncio.Event()

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self.coordinator is None:
            super().handle_exit(sig, frame)
            return
        self.coordinator.trigger(sig)

    async def shutdown(self, sockets=None) -> None:
        try:
            await super().shutdown(sockets=sockets)
        finally:
            self.closed.set()


class UvicornListener:
    def __init__(self, server: CoordinatedServer) -> None:
        self._server = server

    def stop_accepting(self) -> None:
        # Closing the asyncio servers stops new connections; open ones keep going.
        for server in self._server.servers:
            server.close()

    async def close(self) -> None:
        self._server.should_exit = True
        await self._server.closed.wait()


class SignalRelay:
    """
    Process-wide SIGINT/SIGTERM handler, installed by `main()` around the event loop.

    uvicorn installs its own handlers only while `Server.serve()` runs and puts
    back whatever it found afterwards, so this relay stays in charge of the
    signals that arrive during the final drain and flush.
    """

    def __init__(self) -> None:
        self.server: CoordinatedServer | None = None
        self._original: dict[int, Any] = {}

    def install(self) -> None:
        # Signals can only be handled from the main thread.
        if threading.current_thread() is not threading.main_thread():
            return
        self._original = {sig: signal.signal(sig, self.handle) for sig in HANDLED_SIGNALS}

    def restore(self) -> None:
        for sig, handler in self._original.items():
            signal.signal(sig, handler)
        self._original = {}

    def handle(self, sig: int, frame: FrameType | None) -> None:
        if self.server is not None:
            self.server.handle_exit(sig, frame)
            return
        # Nothing is listening yet: behave like the handler we replaced.
        original = self._original.get(sig)
        if callable(original):
            original(sig, frame)
            return
        self.restore()
        signal.raise_signal(sig)


async def serve(settings: Settings, relay: SignalRelay | None = None) -> int:
    subsystems = build_subsystems(settings)
    try:
        await subsystems.registry.init_all()
    except StartupFailure as e:
        log.error("startup_failed", subsystem=e.subsystem, error=repr(e.cause))
        await subsystems.registry.shutdown_all(settings.shutdown_deadline_seconds)
        flush_logging()
        return 1

    app = create_app(settings=settings, subsystems=subsystems)
    config = uvicorn.Config(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
        server_header=False,
        timeout_graceful_shutdown=max(int(settings.shutdown_deadline_seconds), 1),
    )
    server = CoordinatedServer(config)
    coordinator = ShutdownCoordinator(
        registry=subsystems.registry,
        listener=UvicornListener(server),
        deadline=settings.shutdown_deadline_seconds,
        audit=app.state.audit,
    )
    coordinator.bind(asyncio.get_running_loop())
    server.coordinator = coordinator
    if relay is not None:
        relay.server = server

    await server.serve()
    if not server.started:
        # uvicorn could not bind or the lifespan failed; nothing was served.
        log.error("server_start_failed")
        if relay is not None:
            relay.server = None
        await subsystems.registry.shutdown_all(settings.shutdown_deadline_seconds)
        return 1
    if coordinator.state is not CoordinatorState.running:
        await coordinator.wait_stopped()
    return 0


def main() -> None:
    relay = SignalRelay()
    relay.install()
    try:
        code = asyncio.run(serve(get_settings(), relay))
    finally:
        relay.restore()
    sys.exit(code)


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# For production, this is commonly invoked behind a process manager (systemd/k8s)
# which sends SIGTERM and waits at least `shutdown_deadline_seconds`. Signals that
# arrive after teardown started are logged and ignored until the process exits.
