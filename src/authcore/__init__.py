"""
authcore

Authentication and authorization core: credential verification, signed access
tokens, rotating refresh tokens and role policies.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal to avoid import-time side effects across the codebase.
