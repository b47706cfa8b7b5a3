"""
Shared fixtures for frontend tests.

Provides mock_repos, which replaces frontend/app.py's _get_repo() with one
mock repository per collection, and test clients signed in as each account
type.
"""

import os
from collections import defaultdict
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

# Settings are read when frontend.app is imported
os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.pop("SMTP_HOST", None)

from jobboard.common.repositories.base import WriteResult


def _mock_repo() -> MagicMock:
    repo = MagicMock()

    # Default return values for read operations
    repo.find_one.return_value = None
    repo.find.return_value = []
    repo.count_documents.return_value = 0
    repo.aggregate.return_value = []
    repo.ping.return_value = True

    # Default return values for write operations
    repo.insert_one.side_effect = lambda doc: WriteResult(0, 0, upserted_id=str(ObjectId()))
    repo.update_one.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.update_many.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.delete_one.return_value = WriteResult(matched_count=1, modified_count=1)
    repo.delete_many.return_value = WriteResult(matched_count=0, modified_count=0)
    return repo


@pytest.fixture
def mock_repos():
    """Mock the repository pattern.

    frontend/app.py builds every service from _get_repo(collection). This
    fixture patches _get_repo() and returns the dict of per-collection
    mocks, created on first use, so tests can arrange data per collection.
    """
    repos = defaultdict(_mock_repo)
    with patch("frontend.app._get_repo", side_effect=lambda collection: repos[collection]):
        yield repos


@pytest.fixture
def app():
    # Import app here to avoid configuring it at collection time
    from frontend.app import app

    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Anonymous test client."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def company_id():
    return ObjectId()


@pytest.fixture
def jobseeker_id():
    return ObjectId()


@pytest.fixture
def jobseeker_client(app, jobseeker_id):
    """Test client signed in as a job seeker."""
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess["account_id"] = str(jobseeker_id)
            sess["account_type"] = "jobseeker"
            sess["username"] = "ana"
        yield client


@pytest.fixture
def employee_client(app, company_id):
    """Test client signed in as an employee of company_id."""
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess["account_id"] = str(ObjectId())
            sess["account_type"] = "employee"
            sess["username"] = "emp"
            sess["company_id"] = str(company_id)
        yield client
