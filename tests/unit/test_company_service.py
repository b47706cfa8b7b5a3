"""
Tests for company pages, ratings and follows.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from jobboard.common.error_handling import Conflict, NotFound, PermissionDenied, ValidationFailed
from jobboard.common.repositories.base import WriteResult
from jobboard.services.company_service import CompanyService
from jobboard.services.notification_service import NotificationType


@pytest.fixture
def repos(repo_factory):
    return {name: repo_factory() for name in ("companies", "ratings", "follows", "jobs")}


@pytest.fixture
def service(repos):
    return CompanyService(
        company_repository=repos["companies"],
        rating_repository=repos["ratings"],
        follow_repository=repos["follows"],
        job_repository=repos["jobs"],
        notifications=MagicMock(),
    )


@pytest.fixture
def company(company_id):
    return {"_id": company_id, "name": "Acme", "rating": 4.0, "rating_count": 2}


class TestGetCompany:
    """Tests for CompanyService.get_company()."""

    def test_includes_open_jobs_and_follow_state(self, service, repos, company, jobseeker_ctx, job_doc):
        repos["companies"].find_one.return_value = company
        repos["jobs"].find.return_value = [job_doc(company_id=company["_id"])]
        repos["follows"].count_documents.return_value = 7
        repos["follows"].find_one.return_value = {"_id": ObjectId()}
        repos["ratings"].find_one.return_value = {"rating": 5}

        data = service.get_company(str(company["_id"]), jobseeker_ctx)

        assert data["name"] == "Acme"
        assert len(data["jobs"]) == 1
        assert data["follower_count"] == 7
        assert data["is_following"] is True
        assert data["my_rating"] == 5
        assert repos["jobs"].find.call_args[0][0]["is_active"] is True

    def test_anonymous_view_has_no_personal_fields(self, service, repos, company):
        repos["companies"].find_one.return_value = company

        data = service.get_company(str(company["_id"]))

        assert "is_following" not in data
        assert "my_rating" not in data

    def test_unknown_company(self, service):
        with pytest.raises(NotFound, match="Company not found"):
            service.get_company(str(ObjectId()))


class TestRateCompany:
    """Tests for CompanyService.rate_company()."""

    def test_upserts_rating_and_refreshes_average(self, service, repos, company, jobseeker_ctx):
        repos["companies"].find_one.return_value = company
        repos["ratings"].aggregate.return_value = [{"_id": None, "average": 11 / 3, "count": 3}]

        result = service.rate_company(jobseeker_ctx, str(company["_id"]), 4, "Good place")

        key, update = repos["ratings"].update_one.call_args[0]
        assert key["company_id"] == company["_id"]
        assert update["$set"]["rating"] == 4
        assert repos["ratings"].update_one.call_args.kwargs["upsert"] is True

        assert result == {"company_id": str(company["_id"]), "rating": 3.67, "rating_count": 3}
        assert repos["companies"].update_one.call_args[0][1] == {"$set": {"rating": 3.67, "rating_count": 3}}
        repos["jobs"].update_many.assert_called_once_with(
            {"company_id": company["_id"]}, {"$set": {"company_rating": 3.67}},
        )

    @pytest.mark.parametrize("rating", [0, 6, -1, True])
    def test_out_of_range(self, service, jobseeker_ctx, rating):
        with pytest.raises(ValidationFailed, match="Rating must be between 1 and 5"):
            service.rate_company(jobseeker_ctx, str(ObjectId()), rating)

    def test_only_jobseekers_rate(self, service, employee_ctx):
        with pytest.raises(PermissionDenied):
            service.rate_company(employee_ctx, str(ObjectId()), 5)


class TestFollow:
    """Tests for follow(), unfollow() and followed_companies()."""

    def test_follow(self, service, repos, company, jobseeker_ctx):
        repos["companies"].find_one.return_value = company
        repos["follows"].update_one.return_value = WriteResult(0, 0, upserted_id=str(ObjectId()))

        result = service.follow(jobseeker_ctx, str(company["_id"]))

        assert result["following"] is True
        assert service.notifications.create.call_args[0][1] == NotificationType.FOLLOW_COMPANY

    def test_follow_twice_conflicts(self, service, repos, company, jobseeker_ctx):
        repos["companies"].find_one.return_value = company
        repos["follows"].update_one.return_value = WriteResult(1, 0)

        with pytest.raises(Conflict, match="Already following"):
            service.follow(jobseeker_ctx, str(company["_id"]))

    def test_unfollow_when_not_following(self, service, repos, company, jobseeker_ctx):
        repos["companies"].find_one.return_value = company
        repos["follows"].delete_one.return_value = WriteResult(0, 0)

        with pytest.raises(NotFound, match="Not following this company"):
            service.unfollow(jobseeker_ctx, str(company["_id"]))

    def test_unfollow(self, service, repos, company, jobseeker_ctx):
        repos["companies"].find_one.return_value = company

        result = service.unfollow(jobseeker_ctx, str(company["_id"]))

        assert result["following"] is False
        assert service.notifications.create.call_args[0][1] == NotificationType.UNFOLLOW_COMPANY

    def test_followed_companies_in_follow_order(self, service, repos, jobseeker_ctx):
        first, second = ObjectId(), ObjectId()
        repos["follows"].find.return_value = [
            {"company_id": second, "followed_at": datetime(2024, 2, 1)},
            {"company_id": first, "followed_at": datetime(2024, 1, 1)},
        ]
        repos["companies"].find.return_value = [
            {"_id": first, "name": "First"},
            {"_id": second, "name": "Second"},
        ]

        result = service.followed_companies(jobseeker_ctx)

        assert [c["name"] for c in result] == ["Second", "First"]
        assert result[0]["followed_at"] == "2024-02-01T00:00:00"
