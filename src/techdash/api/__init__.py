"""
techdash.api

HTTP surface of the technician dashboard.

Responsibilities:
- FastAPI app factory, handler groups and the process entry point.
- API-layer dependency wiring.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Handlers stay thin: the pipeline and dispatch gate have already decoded the
# body and resolved identity before any handler runs.
