"""
shelter_core.auth

Authentication/authorization package.

Responsibilities:
- Permission model and authorization gate.
- Identity provider boundary and JWT helpers.
- FastAPI auth dependencies (Principal + permission checks).
"""
