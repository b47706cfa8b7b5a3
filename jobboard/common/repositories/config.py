"""
Repository Configuration and Factory

Provides the factory that hands out one repository per collection, built
from environment configuration.
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .base import RepositoryInterface

logger = logging.getLogger(__name__)


class Collections:
    """Collection names used by the job board."""
    ACCOUNTS = "accounts"
    COMPANIES = "companies"
    COMPANY_RATINGS = "company_ratings"
    COMPANY_FOLLOWS = "company_follows"
    JOBS = "jobs"
    JOB_TYPES = "job_types"
    JOB_CATEGORIES = "job_categories"
    CATEGORY_FIELDS = "category_fields"
    EXPERIENCE_LEVELS = "experience_levels"
    EDUCATION_LEVELS = "education_levels"
    APPLICATIONS = "applications"
    SAVED_JOBS = "saved_jobs"
    NOTIFICATIONS = "notifications"
    VERIFICATION_CODES = "verification_codes"

    @classmethod
    def all(cls) -> list:
        return [
            value for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        ]


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: str
    database: str = "jobboard"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI (required): MongoDB connection string
        - MONGO_DB_NAME: Database name (default: jobboard)

        Raises:
            ValueError: If MONGODB_URI is not set
        """
        mongodb_uri = os.getenv("MONGODB_URI")
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        return cls(
            mongodb_uri=mongodb_uri,
            database=os.getenv("MONGO_DB_NAME", "jobboard"),
        )


# One repository per collection, sharing a single client
_repositories: Dict[str, RepositoryInterface] = {}
_config: Optional[RepositoryConfig] = None


def get_repository(collection: str) -> RepositoryInterface:
    """
    Get the repository for a collection.

    Uses a per-collection singleton so the MongoClient connection pool is
    shared across requests.

    Raises:
        ValueError: If the collection is unknown or MONGODB_URI is not configured
    """
    global _config

    if collection not in Collections.all():
        raise ValueError(f"Unknown collection: {collection}")

    if collection not in _repositories:
        if _config is None:
            _config = RepositoryConfig.from_env()

        from .atlas_repository import AtlasRepository
        _repositories[collection] = AtlasRepository(
            mongodb_uri=_config.mongodb_uri,
            database=_config.database,
            collection=collection,
        )
        logger.info(f"Initialized repository for {_config.database}.{collection}")

    return _repositories[collection]


def reset_repository() -> None:
    """Reset all repository singletons and close the shared connection."""
    global _config

    if _repositories:
        from .atlas_repository import AtlasRepository
        AtlasRepository.reset_connection()

    _repositories.clear()
    _config = None
    logger.info("Repository singletons reset")
