"""
Bug tracker service with embedding-based duplicate detection
"""

__version__ = "0.1.0"
