"""
techdash.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Engine/session setup for the persistence subsystem.
- The audit trail table and its repository.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Domain tables (devices, jobs, parts, ...) belong to the business modules that
# mount on the route table; only the audit trail lives here.
