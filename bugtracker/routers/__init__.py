"""
API Routers
"""

from bugtracker.routers import ai, auth, bugs

__all__ = ["ai", "auth", "bugs"]
