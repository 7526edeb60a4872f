"""
shelter_core.api

HTTP surface (FastAPI) over the core services.
"""
