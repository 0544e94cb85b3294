"""
techdash.bootstrap

Composition of the process-wide subsystems.

Responsibilities:
- Construct every subsystem once and register it in dependency order.
- Schedule housekeeping jobs (expired cache entries).
"""

from __future__ import annotations

from dataclasses import dataclass

from techdash.lifecycle.registry import SubsystemRegistry
from techdash.observability.logging import get_logger
from techdash.settings import Settings
from techdash.subsystems.cache import Cache
from techdash.subsystems.event_bus import EventBus
from techdash.subsystems.log_sink import LogSink
from techdash.subsystems.persistence import Database
from techdash.subsystems.realtime import RealtimeHub
from techdash.subsystems.scheduler import Scheduler

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Subsystems:
    registry: SubsystemRegistry
    log_sink: LogSink
    database: Database
    cache: Cache
    event_bus: EventBus
    realtime: RealtimeHub
    scheduler: Scheduler


def build_subsystems(settings: Settings) -> Subsystems:
    log_sink = LogSink(settings)
    database = Database(settings)
    cache = Cache()
    event_bus = EventBus()
    realtime = RealtimeHub(event_bus)
    scheduler = Scheduler()

    async def purge_cache() -> None:
        purged = cache.purge_expired()
        if purged:
            log.info("cache_purged", entries=purged)

    scheduler.add_job("cache_purge", settings.cache_purge_interval_seconds, purge_cache)

    registry = SubsystemRegistry()
    # Registration order is init order; shutdown runs it backwards, so the
    # scheduler stops first and the log sink flushes last.
    for subsystem in (log_sink, database, cache, event_bus, realtime, scheduler):
        registry.register(subsystem)

    return Subsystems(
        registry=registry,
        log_sink=log_sink,
        database=database,
        cache=cache,
        event_bus=event_bus,
        realtime=realtime,
        scheduler=scheduler,
    )
