"""
Application factory for Natours.
"""

from .app import configure_app

__all__ = ["configure_app"]
