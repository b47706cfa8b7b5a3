"""
Tests for in-app notifications.
"""

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from jobboard.common.error_handling import ValidationFailed
from jobboard.common.repositories.base import WriteResult
from jobboard.services.notification_service import NotificationService, NotificationType


@pytest.fixture
def repo(repo_factory):
    return repo_factory()


@pytest.fixture
def service(repo):
    return NotificationService(repository=repo)


class TestCreate:
    """Tests for NotificationService.create()."""

    def test_stores_unread_notification(self, service, repo):
        account_id = ObjectId()

        notification_id = service.create(str(account_id), NotificationType.JOB_POSTED, "Posted", "job-1")

        stored = repo.insert_one.call_args[0][0]
        assert stored["account_id"] == account_id
        assert stored["type"] == "job_posted"
        assert stored["is_read"] is False
        assert stored["reference_id"] == "job-1"
        assert notification_id is not None

    def test_unknown_type_is_dropped(self, service, repo):
        """Bad input is logged, not raised, so the triggering action still succeeds."""
        assert service.create(str(ObjectId()), "birthday", "Hi") is None
        repo.insert_one.assert_not_called()

    def test_storage_failure_is_dropped(self, service, repo):
        repo.insert_one.side_effect = PyMongoError("down")

        assert service.create(str(ObjectId()), NotificationType.JOB_POSTED, "Posted") is None

    def test_notify_many_counts_stored(self, service, repo):
        repo.insert_one.side_effect = [
            WriteResult(0, 0, upserted_id="a"),
            PyMongoError("down"),
            WriteResult(0, 0, upserted_id="c"),
        ]

        stored = service.notify_many([ObjectId(), ObjectId(), ObjectId()], NotificationType.NEW_APPLICANT, "New")

        assert stored == 2


class TestReading:
    """Tests for listing and marking notifications."""

    def test_list_unread_newest_first(self, service, repo, jobseeker_ctx):
        repo.find.return_value = [{"_id": ObjectId(), "message": "Hi"}]

        result = service.list_for(jobseeker_ctx, unread_only=True, limit=10)

        query = repo.find.call_args[0][0]
        assert query == {"account_id": ObjectId(jobseeker_ctx.account_id), "is_read": False}
        assert repo.find.call_args.kwargs["sort"] == [("created_at", -1)]
        assert repo.find.call_args.kwargs["limit"] == 10
        assert result[0]["message"] == "Hi"

    def test_unread_count(self, service, repo, jobseeker_ctx):
        repo.count_documents.return_value = 3

        assert service.unread_count(jobseeker_ctx) == 3

    def test_mark_read_is_scoped_to_caller(self, service, repo, jobseeker_ctx):
        ids = [ObjectId(), ObjectId()]
        repo.update_many.return_value = WriteResult(2, 2)

        assert service.mark_read(jobseeker_ctx, [str(i) for i in ids]) == 2

        query = repo.update_many.call_args[0][0]
        assert query == {"_id": {"$in": ids}, "account_id": ObjectId(jobseeker_ctx.account_id)}

    def test_mark_read_needs_ids(self, service, jobseeker_ctx):
        with pytest.raises(ValidationFailed):
            service.mark_read(jobseeker_ctx, [])

    def test_mark_all_read(self, service, repo, jobseeker_ctx):
        repo.update_many.return_value = WriteResult(4, 4)

        assert service.mark_all_read(jobseeker_ctx) == 4
