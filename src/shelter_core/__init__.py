"""
shelter_core

Authorization and resilient data-access core for the shelter records application.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
