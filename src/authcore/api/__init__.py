"""
authcore.api

HTTP surface of the authentication core.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error translation and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + auth + delegation to `AuthService`.
