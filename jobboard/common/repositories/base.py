"""
Repository Interface Definitions

Defines the abstract interface for collection repository operations.
Services depend on this interface only, so tests can hand in a mock and the
MongoDB implementation can be swapped without touching consumer code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified (or deleted)
        upserted_id: ID of inserted/upserted document (if any)
        inserted_ids: IDs of documents created by a bulk insert
    """
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None
    inserted_ids: Optional[List[str]] = None


class RepositoryInterface(ABC):
    """
    Abstract interface for operations on a single collection.

    All methods follow fail-fast semantics: database errors propagate
    to the caller.
    """

    @abstractmethod
    def ping(self) -> bool:
        """Check the database is reachable; raises on failure."""
        pass

    @abstractmethod
    def find_one(
        self,
        filter: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Find a single document.

        Args:
            filter: MongoDB query filter (e.g., {"_id": ObjectId(...)})
            projection: Fields to include/exclude
            sort: Sort order used to pick the first match

        Returns:
            Document dict if found, None otherwise
        """
        pass

    @abstractmethod
    def find(
        self,
        filter: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Find multiple documents.

        Args:
            filter: MongoDB query filter
            projection: Fields to include/exclude
            sort: Sort order as list of (field, direction) tuples
            limit: Maximum documents to return (0 = no limit)
            skip: Number of documents to skip

        Returns:
            List of matching documents
        """
        pass

    @abstractmethod
    def count_documents(self, filter: Dict[str, Any]) -> int:
        """Count documents matching the filter."""
        pass

    @abstractmethod
    def insert_one(self, document: Dict[str, Any]) -> WriteResult:
        """
        Insert a single document.

        Returns:
            WriteResult with upserted_id set to the new document's _id
        """
        pass

    @abstractmethod
    def insert_many(self, documents: List[Dict[str, Any]]) -> WriteResult:
        """Insert several documents; inserted_ids lists the new ids."""
        pass

    @abstractmethod
    def update_one(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        upsert: bool = False,
    ) -> WriteResult:
        """
        Update a single document.

        Args:
            filter: MongoDB query filter
            update: Update operations (e.g., {"$set": {...}})
            upsert: Create document if not found
        """
        pass

    @abstractmethod
    def update_many(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
    ) -> WriteResult:
        """Update multiple documents."""
        pass

    @abstractmethod
    def delete_one(self, filter: Dict[str, Any]) -> WriteResult:
        """Delete a single document."""
        pass

    @abstractmethod
    def delete_many(self, filter: Dict[str, Any]) -> WriteResult:
        """Delete multiple documents."""
        pass

    @abstractmethod
    def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Run an aggregation pipeline."""
        pass
