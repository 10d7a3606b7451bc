"""
Database models for the Octree editor backend.
"""

from .document import Document
from .usage import UserUsage

__all__ = [
    "Document",
    "UserUsage",
]
