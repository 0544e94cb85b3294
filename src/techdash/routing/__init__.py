"""
techdash.routing

Route composition and dispatch gating.

Responsibilities:
- The immutable prefix -> policy table.
- The gate that applies identity, RBAC and audit before a handler runs.
"""

# Package marker.
