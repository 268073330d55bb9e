"""
authcore.services

Service-layer package.

Responsibilities:
- Orchestrate the auth components into user-facing operations.
- Own the translation from internal failures to external error kinds.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services are pure Python and testable with the in-memory credential store.
