"""
Seed script for reference data and demo jobs.

Usage:
    python -m frontend.seed_data                    # Reference data only
    python -m frontend.seed_data --demo-jobs 20     # Plus a demo company with 20 jobs
    python -m frontend.seed_data --clear            # Clear reference data first
"""

import argparse
import random
from datetime import datetime, timedelta
from typing import Dict, List

from bson import ObjectId

from jobboard.common.logger import get_logger, setup_logging
from jobboard.common.repositories import Collections, get_repository
from jobboard.common.utils import utcnow

logger = get_logger(__name__)

JOB_TYPES = ["Full-time", "Part-time", "Contract", "Internship", "Temporary"]

# Field -> categories in that field
CATEGORY_FIELDS: Dict[str, List[str]] = {
    "Information Technology": ["Software Development", "Web Development", "Data Science", "IT Support"],
    "Healthcare": ["Nursing", "Medical Technology", "Pharmacy"],
    "Business": ["Accounting", "Marketing", "Human Resources", "Sales"],
    "Engineering": ["Civil Engineering", "Electrical Engineering", "Mechanical Engineering"],
    "Education": ["Teaching", "Training and Development"],
}

EXPERIENCE_LEVELS = {
    1: "Entry Level",
    2: "Mid Level",
    3: "Senior Level",
    4: "Managerial",
    5: "Executive",
}

EDUCATION_LEVELS = {
    1: "High School",
    2: "Associate Degree",
    3: "Bachelor's Degree",
    4: "Master's Degree",
    5: "Doctorate",
    6: "PhD",
    7: "Vocational",
}

LOCATIONS = ["Manila", "Cebu City", "Davao City", "Quezon City", "Makati", "Remote"]

SALARIES = ["25,000", "35,000", "45,000", "60,000", "75,000", "90,000", "50k", "Negotiable", None]


def seed_reference_data(clear: bool = False) -> Dict[str, List[dict]]:
    """
    Insert job types, fields, categories and levels.

    Returns the inserted type and category documents.
    """
    types_repo = get_repository(Collections.JOB_TYPES)
    fields_repo = get_repository(Collections.CATEGORY_FIELDS)
    categories_repo = get_repository(Collections.JOB_CATEGORIES)
    experience_repo = get_repository(Collections.EXPERIENCE_LEVELS)
    education_repo = get_repository(Collections.EDUCATION_LEVELS)

    if clear:
        for repo in (types_repo, fields_repo, categories_repo, experience_repo, education_repo):
            result = repo.delete_many({})
            logger.info(f"Cleared {result.modified_count} documents from {repo.collection_name}")

    job_types = [{"_id": ObjectId(), "name": name} for name in JOB_TYPES]
    types_repo.insert_many(job_types)

    categories = []
    for field_name, category_names in CATEGORY_FIELDS.items():
        field_id = ObjectId()
        fields_repo.insert_one({"_id": field_id, "name": field_name})
        for name in category_names:
            categories.append({
                "_id": ObjectId(),
                "name": name,
                "field_id": field_id,
                "field_name": field_name,
            })
    categories_repo.insert_many(categories)

    experience_repo.insert_many([{"_id": level, "name": name} for level, name in EXPERIENCE_LEVELS.items()])
    education_repo.insert_many([{"_id": level, "name": name} for level, name in EDUCATION_LEVELS.items()])

    logger.info(
        f"Seeded {len(job_types)} job types, {len(CATEGORY_FIELDS)} fields, "
        f"{len(categories)} categories"
    )
    return {"job_types": job_types, "categories": categories}


def generate_demo_job(company: dict, job_types: List[dict], categories: List[dict]) -> dict:
    """Generate a single demo job document."""
    category = random.choice(categories)
    job_type = random.choice(job_types)
    posted = utcnow() - timedelta(days=random.randint(0, 30))

    return {
        "title": f"{category['name']} Specialist",
        "description": f"{company['name']} is hiring for {category['name'].lower()} work.",
        "location": random.choice(LOCATIONS),
        "salary": random.choice(SALARIES),
        "job_type": {"id": job_type["_id"], "name": job_type["name"]},
        "categories": [{
            "id": category["_id"],
            "name": category["name"],
            "field_id": category["field_id"],
            "field_name": category["field_name"],
        }],
        "company_id": company["_id"],
        "company_name": company["name"],
        "company_rating": company["rating"],
        "experience_level_id": random.choice(list(EXPERIENCE_LEVELS)),
        "required_education_level_id": random.choice([None, 1, 2, 3]),
        "posted_date": datetime(posted.year, posted.month, posted.day),
        "closing_date": None,
        "is_active": True,
        "created_at": posted,
        "updated_at": posted,
    }


def seed_demo_jobs(count: int, job_types: List[dict], categories: List[dict]) -> None:
    company = {"_id": ObjectId(), "name": "Demo Company", "email": "demo@example.com", "rating": 4.2, "rating_count": 5}
    get_repository(Collections.COMPANIES).insert_one(dict(company, created_at=utcnow()))

    jobs = [generate_demo_job(company, job_types, categories) for _ in range(count)]
    result = get_repository(Collections.JOBS).insert_many(jobs)
    logger.info(f"Inserted {len(result.inserted_ids)} demo jobs for {company['name']}")


def main():
    parser = argparse.ArgumentParser(description="Seed reference data and demo jobs")
    parser.add_argument("--demo-jobs", type=int, default=0, help="Number of demo jobs to create")
    parser.add_argument("--clear", action="store_true", help="Clear reference data first")
    args = parser.parse_args()

    setup_logging()
    seeded = seed_reference_data(clear=args.clear)
    if args.demo_jobs > 0:
        seed_demo_jobs(args.demo_jobs, seeded["job_types"], seeded["categories"])


if __name__ == "__main__":
    main()
