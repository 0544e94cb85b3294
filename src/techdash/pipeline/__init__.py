"""
techdash.pipeline

Security middleware chain.

Responsibilities:
- Ordered request stages (headers, origin policy, rate limit, body, uploads, session).
- The dispatch loop that runs them and maps errors to responses.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Stage order is data (`middleware.build_stages`), so it can be asserted in tests
# without sending a request.
