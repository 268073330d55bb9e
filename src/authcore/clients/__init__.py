"""
authcore.clients

Client boundary for services calling authcore over HTTP.

Responsibilities:
- Provide a typed async client whose responses are validated before use.
"""

# Package marker.
