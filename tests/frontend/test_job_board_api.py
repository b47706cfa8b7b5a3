"""
Tests for the job board JSON API and the HTMX job rows partial.
"""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from jobboard.common.repositories import Collections
from jobboard.common.repositories.base import WriteResult
from jobboard.services.auth_service import hash_password


def job_doc(title, salary=None, posted=None, rating=0.0, categories=(), **overrides):
    doc = {
        "_id": ObjectId(),
        "title": title,
        "description": f"{title} role",
        "location": "Manila",
        "salary": salary,
        "job_type": {"id": ObjectId(), "name": "Full-time"},
        "categories": list(categories),
        "company_id": ObjectId(),
        "company_name": "Acme",
        "company_rating": rating,
        "posted_date": posted,
        "closing_date": None,
        "is_active": True,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def engineer_and_clerk(mock_repos):
    docs = [
        job_doc("Engineer", salary="50000", posted=datetime(2024, 1, 1)),
        job_doc("Clerk", salary="20000", posted=datetime(2024, 2, 1)),
    ]
    mock_repos[Collections.JOBS].find.return_value = docs
    return docs


class TestHealth:
    def test_healthy(self, client, mock_repos):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["services"]["mongodb"] == "connected"

    def test_degraded_when_database_down(self, client, mock_repos):
        mock_repos[Collections.JOBS].ping.side_effect = PyMongoError("down")

        response = client.get("/health")

        assert response.json["status"] == "degraded"


class TestAuthenticationRequired:
    def test_api_returns_401(self, client, mock_repos):
        response = client.get("/api/jobs")

        assert response.status_code == 401
        assert response.json == {"success": False, "error": "Not authenticated"}

    def test_pages_redirect_to_login(self, client, mock_repos):
        response = client.get("/jobs")

        assert response.status_code == 302
        assert "/login" in response.headers["Location"]

    def test_wrong_account_type_is_forbidden(self, employee_client, mock_repos):
        response = employee_client.get("/api/jobs/recommended")

        assert response.status_code == 403

    def test_jobseeker_cannot_post_jobs(self, jobseeker_client, mock_repos):
        response = jobseeker_client.post("/api/employee/jobs", json={})

        assert response.status_code == 403
        mock_repos[Collections.JOBS].insert_one.assert_not_called()


class TestJobListing:
    """Tests for /api/jobs and /api/guest/jobs."""

    def test_salary_filter(self, jobseeker_client, engineer_and_clerk):
        response = jobseeker_client.get("/api/jobs?salary_min=30000")

        assert response.status_code == 200
        assert [j["title"] for j in response.json["jobs"]] == ["Engineer"]

    def test_newest_first(self, jobseeker_client, engineer_and_clerk):
        response = jobseeker_client.get("/api/jobs?sort=newest")

        assert [j["title"] for j in response.json["jobs"]] == ["Clerk", "Engineer"]

    def test_search(self, jobseeker_client, engineer_and_clerk):
        response = jobseeker_client.get("/api/jobs?search=eng")

        assert [j["title"] for j in response.json["jobs"]] == ["Engineer"]

    def test_seq_is_echoed(self, jobseeker_client, engineer_and_clerk):
        assert jobseeker_client.get("/api/jobs?seq=17").json["seq"] == 17
        assert jobseeker_client.get("/api/jobs").json["seq"] is None

    def test_only_open_jobs_are_queried(self, jobseeker_client, engineer_and_clerk, mock_repos):
        jobseeker_client.get("/api/jobs")

        query = mock_repos[Collections.JOBS].find.call_args[0][0]
        assert query["is_active"] is True

    def test_pagination(self, jobseeker_client, mock_repos):
        mock_repos[Collections.JOBS].find.return_value = [
            job_doc(f"Job {i}", posted=datetime(2024, 1, 1) + timedelta(days=i)) for i in range(5)
        ]

        response = jobseeker_client.get("/api/jobs?page=2&page_size=2")

        assert [j["title"] for j in response.json["jobs"]] == ["Job 2", "Job 1"]
        assert response.json["pagination"]["total_pages"] == 3

    def test_guest_listing_needs_no_login(self, client, engineer_and_clerk):
        response = client.get("/api/guest/jobs?salary_range=0-20000")

        assert response.status_code == 200
        assert [j["title"] for j in response.json["jobs"]] == ["Clerk"]

    def test_company_jobs_use_same_pipeline(self, jobseeker_client, engineer_and_clerk, mock_repos, company_id):
        response = jobseeker_client.get(f"/api/companies/{company_id}/jobs?sort=oldest")

        assert [j["title"] for j in response.json["jobs"]] == ["Engineer", "Clerk"]
        query = mock_repos[Collections.JOBS].find.call_args[0][0]
        assert query["company_id"] == company_id

    def test_database_error_returns_503(self, jobseeker_client, mock_repos):
        mock_repos[Collections.JOBS].find.side_effect = PyMongoError("timeout")

        response = jobseeker_client.get("/api/jobs")

        assert response.status_code == 503
        assert response.json == {"success": False, "error": "Could not load data, please try again"}


class TestJobRowsPartial:
    def test_renders_rows_with_seq(self, jobseeker_client, engineer_and_clerk):
        response = jobseeker_client.get("/partials/job-rows?seq=4&sort=oldest")

        html = response.get_data(as_text=True)
        assert response.status_code == 200
        assert 'data-seq="4"' in html
        assert html.index("Engineer") < html.index("Clerk")

    def test_error_state(self, jobseeker_client, mock_repos):
        mock_repos[Collections.JOBS].find.side_effect = PyMongoError("timeout")

        response = jobseeker_client.get("/partials/job-rows?seq=7")

        html = response.get_data(as_text=True)
        assert response.status_code == 503
        assert "Could not load data, please try again" in html
        assert 'data-seq="7"' in html

    def test_paging_links_go_through_filter_form(self, jobseeker_client, mock_repos):
        mock_repos[Collections.JOBS].find.return_value = [
            job_doc(f"Job {i}", posted=datetime(2024, 1, 1) + timedelta(days=i)) for i in range(5)
        ]

        html = jobseeker_client.get("/partials/job-rows?page=2&page_size=2&seq=3").get_data(as_text=True)

        assert 'data-page="1"' in html
        assert 'data-page="3"' in html
        # Paging is sent by the filter form
        assert "hx-get" not in html

    def test_jobs_page_form_carries_page_input(self, jobseeker_client, mock_repos):
        html = jobseeker_client.get("/jobs").get_data(as_text=True)

        assert 'id="job-page"' in html
        assert 'hx-sync="this:replace"' in html
        assert "jobs-page" in html


class TestRecommended:
    """Tests for /api/jobs/recommended."""

    @pytest.fixture
    def preferences(self, mock_repos, jobseeker_id):
        category, field = ObjectId(), ObjectId()
        mock_repos[Collections.ACCOUNTS].find_one.return_value = {
            "_id": jobseeker_id,
            "account_type": "jobseeker",
            "preferences": {"category_ids": [category], "field_ids": [field]},
            "profile": {},
        }
        return category, field

    def test_ranked_order_and_banner(self, jobseeker_client, mock_repos, preferences):
        category, field = preferences
        exact = {"id": category, "name": "Web", "field_id": field, "field_name": "IT"}
        same_field = {"id": ObjectId(), "name": "Data", "field_id": field, "field_name": "IT"}
        mock_repos[Collections.JOBS].find.return_value = [
            job_doc("Field High", rating=5.0, categories=[same_field]),
            job_doc("Exact", rating=1.0, categories=[exact]),
            job_doc("Field Low", rating=2.0, categories=[same_field]),
        ]

        response = jobseeker_client.get("/api/jobs/recommended")

        assert response.status_code == 200
        titles = [j["title"] for j in response.json["jobs"]]
        assert titles == ["Exact", "Field High", "Field Low"]
        assert response.json["jobs"][0]["preference_score"] == 100
        assert "exact category match" in response.json["banner"]

    def test_explicit_sort_overrides_ranking(self, jobseeker_client, mock_repos, preferences):
        category, field = preferences
        exact = {"id": category, "name": "Web", "field_id": field, "field_name": "IT"}
        mock_repos[Collections.JOBS].find.return_value = [
            job_doc("Low pay", salary="20000", rating=5.0, categories=[exact]),
            job_doc("High pay", salary="90000", rating=1.0, categories=[exact]),
        ]

        response = jobseeker_client.get("/api/jobs/recommended?sort=salary_high")

        assert [j["title"] for j in response.json["jobs"]] == ["High pay", "Low pay"]

    def test_weak_matches_left_out(self, jobseeker_client, mock_repos, preferences):
        category, field = preferences
        mock_repos[Collections.ACCOUNTS].find_one.return_value["profile"] = {"experience_level_id": 1}
        other_field = ObjectId()
        mock_repos[Collections.JOBS].find.return_value = [
            job_doc("Strong", experience_level_id=1, categories=[
                {"id": category, "name": "Web", "field_id": field, "field_name": "IT"},
            ]),
            # field 0, experience 20, category 50: weighted match 14
            job_doc("Weak", experience_level_id=5, categories=[
                {"id": category, "name": "Web", "field_id": other_field, "field_name": "Design"},
                {"id": ObjectId(), "name": "Print", "field_id": other_field, "field_name": "Design"},
            ]),
        ]

        response = jobseeker_client.get("/api/jobs/recommended")
        html = jobseeker_client.get("/partials/job-rows?view=recommended").get_data(as_text=True)

        assert [j["title"] for j in response.json["jobs"]] == ["Strong"]
        assert response.json["jobs"][0]["match"] == 100
        assert "Strong" in html
        assert "Weak" not in html

    def test_no_preferences(self, jobseeker_client, mock_repos, jobseeker_id):
        mock_repos[Collections.ACCOUNTS].find_one.return_value = {"_id": jobseeker_id, "preferences": {}}

        response = jobseeker_client.get("/api/jobs/recommended")

        assert response.json["jobs"] == []


class TestRegistrationAndLogin:
    def test_register_jobseeker(self, client, mock_repos):
        response = client.post("/api/auth/register/jobseeker", json={
            "email": "ana@example.com",
            "username": "ana",
            "password": "password123",
            "first_name": "Ana",
            "last_name": "Cruz",
        })

        assert response.status_code == 201
        assert response.json["requires_verification"] is True
        mock_repos[Collections.VERIFICATION_CODES].insert_one.assert_called_once()

    def test_validation_error_is_400(self, client, mock_repos):
        response = client.post("/api/auth/register/jobseeker", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json["success"] is False
        assert response.json["details"]

    def test_unknown_account_type(self, client, mock_repos):
        response = client.post("/api/auth/register/admin", json={})

        assert response.status_code == 400

    def test_duplicate_is_409(self, client, mock_repos):
        mock_repos[Collections.ACCOUNTS].find.return_value = [{"email": "ana@example.com", "username": "x"}]

        response = client.post("/api/auth/register/jobseeker", json={
            "email": "ana@example.com", "username": "ana", "password": "password123",
            "first_name": "Ana", "last_name": "Cruz",
        })

        assert response.status_code == 409
        assert response.json["error"] == "Email is already registered"

    def test_two_step_login_sets_session(self, client, mock_repos):
        account_id = ObjectId()
        mock_repos[Collections.ACCOUNTS].find_one.return_value = {
            "_id": account_id,
            "account_type": "jobseeker",
            "email": "ana@example.com",
            "username": "ana",
            "password_hash": hash_password("password123"),
            "is_verified": True,
        }

        step_one = client.post("/api/auth/login", json={
            "username": "ana", "password": "password123", "account_type": "jobseeker",
        })
        assert step_one.json["verification_type"] == "login"
        assert client.get("/api/auth/session").json["authenticated"] is False

        step_two = client.post("/api/auth/verify-login", json={"account_id": str(account_id), "code": "123456"})
        assert step_two.status_code == 200

        session = client.get("/api/auth/session").json
        assert session["authenticated"] is True
        assert session["account"]["account_id"] == str(account_id)

    def test_bad_code_is_rejected(self, client, mock_repos):
        mock_repos[Collections.ACCOUNTS].find_one.return_value = {
            "_id": ObjectId(), "account_type": "jobseeker", "is_verified": True,
        }
        mock_repos[Collections.VERIFICATION_CODES].update_one.return_value = WriteResult(0, 0)

        response = client.post("/api/auth/verify-login", json={"account_id": str(ObjectId()), "code": "000000"})

        assert response.status_code == 400
        assert response.json["error"] == "Invalid or expired verification code"


class TestEmployeeJobs:
    def test_create_job(self, employee_client, mock_repos, company_id):
        type_id, category_id = ObjectId(), ObjectId()
        mock_repos[Collections.COMPANIES].find_one.return_value = {"_id": company_id, "name": "Acme", "rating": 4.0}
        mock_repos[Collections.JOB_TYPES].find_one.return_value = {"_id": type_id, "name": "Full-time"}
        mock_repos[Collections.JOB_CATEGORIES].find.return_value = [
            {"_id": category_id, "name": "Web", "field_id": ObjectId(), "field_name": "IT"},
        ]

        response = employee_client.post("/api/employee/jobs", json={
            "title": "Backend Developer",
            "description": "Build APIs",
            "location": "Manila",
            "job_type_id": str(type_id),
            "category_ids": [str(category_id)],
            "posted_date": "2024-03-01",
            "closing_date": "2024-04-01",
        })

        assert response.status_code == 201
        assert response.json["message"] == "Job created successfully"
        stored = mock_repos[Collections.JOBS].insert_one.call_args[0][0]
        assert stored["company_name"] == "Acme"

    def test_closing_before_posting_is_400(self, employee_client, mock_repos, company_id):
        mock_repos[Collections.COMPANIES].find_one.return_value = {"_id": company_id, "name": "Acme"}

        response = employee_client.post("/api/employee/jobs", json={
            "title": "Backend Developer",
            "description": "Build APIs",
            "location": "Manila",
            "job_type_id": str(ObjectId()),
            "category_ids": [str(ObjectId())],
            "posted_date": "2024-03-01",
            "closing_date": "2024-02-01",
        })

        assert response.status_code == 400
        assert "Closing date" in response.json["error"]

    def test_other_company_job_is_403(self, employee_client, mock_repos):
        mock_repos[Collections.JOBS].find_one.return_value = job_doc("Theirs")

        response = employee_client.post(f"/api/employee/jobs/{ObjectId()}/toggle", json={"is_active": False})

        assert response.status_code == 403
        assert response.json["error"] == "Unauthorized access to job"

    def test_update_with_null_required_fields_is_400(self, employee_client, mock_repos):
        response = employee_client.put(f"/api/employee/jobs/{ObjectId()}", json={
            "title": None,
            "location": None,
            "posted_date": None,
        })

        assert response.status_code == 400
        mock_repos[Collections.JOBS].update_one.assert_not_called()
