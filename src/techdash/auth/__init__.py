"""
techdash.auth

Authentication/authorization package.

Responsibilities:
- Roles, session identity, server-side sessions and the signed session cookie.
- Identity resolver and authorization gate used by the dispatch gate.
- FastAPI dependencies exposing the session and identity to handlers.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The gate runs before handlers; handlers read the already-resolved identity.
