"""
authcore.auth

Authentication/authorization package.

Responsibilities:
- Password hashing.
- Access token minting/verification and refresh token lifecycle.
- Role policies and FastAPI auth dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Collaborator services only need `auth.jwt.TokenVerifier`, `auth.models.AccessClaims`
# and `auth.deps`; everything else is internal to the core.
