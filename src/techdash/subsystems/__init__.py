"""
techdash.subsystems

Stateful services owned by the subsystem registry.

Responsibilities:
- Log sink, persistence, cache, event bus, realtime transport, job scheduler.
- Each exposes `name`, `init()` and `shutdown(timeout)`.
"""

# Package marker; the registry is assembled in `techdash.bootstrap`.


# --- Module Notes -----------------------------------------------------------
# These are deliberately small: the request backbone only relies on their
# lifecycle contract and a narrow API each.
