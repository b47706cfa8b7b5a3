"""
Read-only lookup lists: job types, categories, fields and levels.
"""

from typing import Any, Dict, List, Optional

from jobboard.common.error_handling import ValidationFailed
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import serialize_document


class ReferenceDataService:
    """
    Collections used:
        - job_types, job_categories, category_fields
        - experience_levels, education_levels (integer _id, ordered by level)
    """

    def __init__(self, repositories: Optional[Dict[str, RepositoryInterface]] = None):
        self._repositories = dict(repositories or {})

    def _repo(self, collection: str) -> RepositoryInterface:
        if collection not in self._repositories:
            self._repositories[collection] = get_repository(collection)
        return self._repositories[collection]

    def _list(self, collection: str, sort_field: str) -> List[Dict[str, Any]]:
        docs = self._repo(collection).find({}, sort=[(sort_field, 1)])
        return [serialize_document(doc) for doc in docs]

    def job_types(self) -> List[Dict[str, Any]]:
        return self._list(Collections.JOB_TYPES, "name")

    def job_categories(self) -> List[Dict[str, Any]]:
        """Categories with their field id and name."""
        return self._list(Collections.JOB_CATEGORIES, "name")

    def category_fields(self) -> List[Dict[str, Any]]:
        return self._list(Collections.CATEGORY_FIELDS, "name")

    def experience_levels(self) -> List[Dict[str, Any]]:
        return self._list(Collections.EXPERIENCE_LEVELS, "_id")

    def education_levels(self) -> List[Dict[str, Any]]:
        return self._list(Collections.EDUCATION_LEVELS, "_id")

    def categories_by_id(self, category_ids: List[Any]) -> List[Dict[str, Any]]:
        """Raw category documents for the given ids, in no particular order."""
        if not category_ids:
            return []
        return self._repo(Collections.JOB_CATEGORIES).find({"_id": {"$in": list(category_ids)}})

    def job_type(self, job_type_id: Any) -> Dict[str, Any]:
        """
        Look up one job type.

        Raises:
            ValidationFailed: If it does not exist
        """
        doc = self._repo(Collections.JOB_TYPES).find_one({"_id": job_type_id})
        if not doc:
            raise ValidationFailed("Invalid job type")
        return doc
