"""
shelter_core.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide the document table, engine/session setup, store error taxonomy and repositories.
"""
