"""
shelter_core.services

Service-layer package.

Responsibilities:
- Session bootstrap, permission repair, account administration and case numbering.
"""
