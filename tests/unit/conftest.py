"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents real SMTP/database settings leaking in)

It also provides factories for mock repositories, auth contexts and job
documents shared by the service tests.
"""

import os
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

# Set test environment BEFORE any imports so Settings never sees real values
os.environ["ENVIRONMENT"] = "development"

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.config import get_settings
from jobboard.common.repositories.base import WriteResult


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient() defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    SMTP is left unconfigured so verification codes are only logged.
    """
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
    for name in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD", "FLASK_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_repo() -> MagicMock:
    """Mock repository with empty reads and successful writes."""
    repo = MagicMock()
    repo.find_one.return_value = None
    repo.find.return_value = []
    repo.count_documents.return_value = 0
    repo.aggregate.return_value = []
    repo.insert_one.return_value = WriteResult(matched_count=0, modified_count=0, upserted_id=str(ObjectId()))
    repo.insert_many.return_value = WriteResult(matched_count=0, modified_count=0, inserted_ids=[])
    repo.update_one.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.update_many.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.delete_one.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.delete_many.return_value = WriteResult(matched_count=0, modified_count=0)
    return repo


@pytest.fixture
def repo_factory():
    return make_repo


@pytest.fixture
def company_id():
    return ObjectId()


@pytest.fixture
def jobseeker_ctx():
    return AuthContext(
        account_id=str(ObjectId()),
        account_type=AccountType.JOBSEEKER,
        username="seeker",
        request_id="req-seeker",
    )


@pytest.fixture
def employee_ctx(company_id):
    return AuthContext(
        account_id=str(ObjectId()),
        account_type=AccountType.EMPLOYEE,
        username="employee",
        company_id=str(company_id),
        request_id="req-employee",
    )


@pytest.fixture
def job_doc():
    """Factory for stored job documents."""
    def _make(**overrides):
        doc = {
            "_id": ObjectId(),
            "title": "Backend Developer",
            "description": "Build APIs",
            "location": "Manila",
            "salary": "50,000",
            "job_type": {"id": ObjectId(), "name": "Full-time"},
            "categories": [],
            "company_id": ObjectId(),
            "company_name": "Acme",
            "company_rating": 4.0,
            "posted_date": datetime(2024, 1, 10),
            "closing_date": None,
            "is_active": True,
        }
        doc.update(overrides)
        return doc
    return _make
