"""
Utility modules for the Octree editor backend.
"""

from .exceptions import (
    OctreeException,
    DiffParseError,
    BoundsError,
    AnchorMismatchError,
    LimitExceededError,
    ApplyError,
    ConflictResolutionError,
    PersistenceError,
    CompilationError,
    LatexSafetyError,
    LLMServiceError,
    DocumentNotFoundError,
    SessionNotFoundError,
    SuggestionNotFoundError,
    ValidationError,
)

__all__ = [
    "OctreeException",
    "DiffParseError",
    "BoundsError",
    "AnchorMismatchError",
    "LimitExceededError",
    "ApplyError",
    "ConflictResolutionError",
    "PersistenceError",
    "CompilationError",
    "LatexSafetyError",
    "LLMServiceError",
    "DocumentNotFoundError",
    "SessionNotFoundError",
    "SuggestionNotFoundError",
    "ValidationError",
]
