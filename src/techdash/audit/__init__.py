"""
techdash.audit

Audit instrumentation package.

Responsibilities:
- Audit event model and outcomes.
- Non-blocking interceptor that records one event per audited request.
- Sinks that persist events (database) or keep them in memory.
"""

# Package marker.
