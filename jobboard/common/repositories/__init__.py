"""
Repository Pattern for MongoDB Operations

Provides an abstraction layer over the hosted MongoDB database.

Public API:
- get_repository(collection): Factory to get a collection repository
- RepositoryInterface: Abstract interface for a collection
- WriteResult: Result dataclass for write operations
- Collections: Collection name constants
"""

from .base import RepositoryInterface, WriteResult
from .config import (
    Collections,
    RepositoryConfig,
    get_repository,
    reset_repository,
)

__all__ = [
    "get_repository",
    "reset_repository",
    "RepositoryInterface",
    "WriteResult",
    "RepositoryConfig",
    "Collections",
]
