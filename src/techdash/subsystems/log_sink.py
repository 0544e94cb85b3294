"""
techdash.subsystems.log_sink

Logging as a subsystem: configured first, flushed last.
"""

from __future__ import annotations

from techdash.observability.logging import configure_logging, flush_logging
from techdash.settings import Settings


class LogSink:
    name = "log_sink"

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def init(self) -> None:
        configure_logging(
            service_name=self._settings.service_name,
            level=self._settings.log_level,
            json=self._settings.env != "dev",
        )

    async def shutdown(self, timeout: float) -> None:
        flush_logging()
