"""
Core module: Configuration, Database, Logging, Common Utilities
"""

from bugtracker.core.config import settings
from bugtracker.core.db import get_session, get_session_maker

__all__ = ["settings", "get_session", "get_session_maker"]
