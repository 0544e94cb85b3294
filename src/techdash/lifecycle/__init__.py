"""
techdash.lifecycle

Process lifecycle package.

Responsibilities:
- Subsystem registry (ordered init, reverse-order bounded teardown).
- Shutdown coordinator reacting to termination signals.
"""

# Package marker; import from submodules.


# --- Module Notes -----------------------------------------------------------
# Nothing in here knows about HTTP; the server is reached through the `Listener` protocol.
