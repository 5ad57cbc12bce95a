"""
Custom Exceptions for the Bug Tracker
"""

from typing import Any


class BugTrackerException(Exception):
    """Base exception for all bug tracker errors"""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details
        super().__init__(self.message)


# Database Exceptions
class DatabaseError(BugTrackerException):
    """Database operation failed"""

    pass


class RecordNotFoundError(BugTrackerException):
    """Requested record not found in database"""

    pass


class DuplicateRecordError(BugTrackerException):
    """Attempted to create duplicate record"""

    pass


# Embedding Exceptions
class EmbeddingError(BugTrackerException):
    """Embedding provider failed to produce a vector"""

    pass


class EmbeddingTimeoutError(EmbeddingError):
    """Embedding provider did not answer in time"""

    pass


class DimensionMismatchError(BugTrackerException):
    """Vectors are empty or of different lengths"""

    pass


# Pipeline Exceptions
class AnalysisError(BugTrackerException):
    """Base heuristic analysis failed"""

    pass


class SearchError(BugTrackerException):
    """Primary search tier failed"""

    pass


# Validation Exceptions
class ValidationError(BugTrackerException):
    """Input validation failed"""

    pass


class AuthenticationError(BugTrackerException):
    """Authentication failed"""

    pass


class AuthorizationError(BugTrackerException):
    """User not authorized for this operation"""

    pass


class JWTDecodeError(AuthenticationError):
    """JWT decoding failed"""

    pass
