"""
Tests for the reference data and demo job seeder.
"""

from collections import defaultdict
from unittest.mock import patch

from frontend.seed_data import (
    CATEGORY_FIELDS,
    EDUCATION_LEVELS,
    EXPERIENCE_LEVELS,
    JOB_TYPES,
    generate_demo_job,
    seed_demo_jobs,
    seed_reference_data,
)
from jobboard.common.repositories import Collections
from jobboard.services.job_listing import Job


class TestSeedReferenceData:
    def test_inserts_every_list(self, repo_factory):
        repos = defaultdict(repo_factory)
        with patch("frontend.seed_data.get_repository", side_effect=lambda name: repos[name]):
            seeded = seed_reference_data()

        assert len(seeded["job_types"]) == len(JOB_TYPES)
        assert len(seeded["categories"]) == sum(len(v) for v in CATEGORY_FIELDS.values())
        assert repos[Collections.CATEGORY_FIELDS].insert_one.call_count == len(CATEGORY_FIELDS)
        levels = repos[Collections.EXPERIENCE_LEVELS].insert_many.call_args[0][0]
        assert [level["_id"] for level in levels] == list(EXPERIENCE_LEVELS)
        education = repos[Collections.EDUCATION_LEVELS].insert_many.call_args[0][0]
        assert len(education) == len(EDUCATION_LEVELS)
        repos[Collections.JOB_TYPES].delete_many.assert_not_called()

    def test_clear_first(self, repo_factory):
        repos = defaultdict(repo_factory)
        with patch("frontend.seed_data.get_repository", side_effect=lambda name: repos[name]):
            seed_reference_data(clear=True)

        repos[Collections.JOB_TYPES].delete_many.assert_called_once_with({})


class TestDemoJobs:
    def test_demo_job_is_listable(self, repo_factory):
        repos = defaultdict(repo_factory)
        with patch("frontend.seed_data.get_repository", side_effect=lambda name: repos[name]):
            seeded = seed_reference_data()

        company = {"_id": "c1", "name": "Demo Company", "rating": 4.2}
        doc = generate_demo_job(company, seeded["job_types"], seeded["categories"])
        job = Job.from_document(dict(doc, _id="j1"))

        assert job.company_name == "Demo Company"
        assert job.job_type in JOB_TYPES
        assert len(job.categories) == 1
        assert job.field in CATEGORY_FIELDS
        assert job.is_active is True

    def test_seed_demo_jobs_inserts_count(self, repo_factory):
        repos = defaultdict(repo_factory)
        with patch("frontend.seed_data.get_repository", side_effect=lambda name: repos[name]):
            seeded = seed_reference_data()
            seed_demo_jobs(4, seeded["job_types"], seeded["categories"])

        jobs = repos[Collections.JOBS].insert_many.call_args[0][0]
        assert len(jobs) == 4
        repos[Collections.COMPANIES].insert_one.assert_called_once()
