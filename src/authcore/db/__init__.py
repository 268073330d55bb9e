"""
authcore.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories backing the SQL
  credential store.
"""

# Package marker.
