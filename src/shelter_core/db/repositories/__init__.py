"""
shelter_core.db.repositories

Repository package; import repositories directly from submodules.
"""
