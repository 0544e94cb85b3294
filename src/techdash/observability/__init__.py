"""
techdash.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The log sink subsystem (`techdash.subsystems.log_sink`) calls into this package
# during startup so logging is the first thing configured and the last released.
