"""
techdash.audit.interceptor

Audit interceptor.

Responsibilities:
- Record one audit event per request that reaches an audited route.
- Write events in the background so the response is never delayed or altered.
- Log and drop sink failures; drain pending writes on shutdown.
"""

from __future__ import annotations

import asyncio

from techdash.audit.events import AuditEvent
from techdash.audit.sinks import AuditSink
from techdash.observability.logging import get_logger

log = get_logger(__name__)


class AuditInterceptor:
    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink
        self._pending: set[asyncio.Task[None]] = set()
        self.recorded = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(self, event: AuditEvent) -> None:
        """Schedule the write and return immediately."""

        self.recorded += 1
        task = asyncio.get_running_loop().create_task(self._write(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, event: AuditEvent) -> None:
        try:
            await self._sink.write(event)
        except Exception as e:
            # Best effort: a lost audit event must not affect the request.
            self.failed += 1
            log.warning(
                "audit_write_failed",
                actor_id=event.actor_id,
                action=event.action,
                path_prefix=event.path_prefix,
                outcome=event.outcome.value,
                error=repr(e),
            )

    async def drain(self, timeout: float) -> None:
        if not self._pending:
            return
        _, still_pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if still_pending:
            log.warning("audit_writes_abandoned", count=len(still_pending))
            for task in still_pending:
                task.cancel()


# --- Module Notes -----------------------------------------------------------
# Retried requests produce independent events; there is no deduplication key.
