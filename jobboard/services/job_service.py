"""
Employer job management and job lookups.

Job documents are stored with the company name and rating, the job type and
the category/field names copied in, so every listing is a single query:

    {"title", "description", "location", "salary",
     "job_type": {"id", "name"},
     "categories": [{"id", "name", "field_id", "field_name"}],
     "company_id", "company_name", "company_rating",
     "experience_level_id", "required_education_level_id",
     "posted_date", "closing_date", "is_active",
     "created_by", "created_at", "updated_at"}
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.error_handling import NotFound, PermissionDenied, ValidationFailed
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import to_object_id, utcnow
from jobboard.models import JobRequest, JobUpdateRequest
from jobboard.services.auth_service import confirm_password
from jobboard.services.job_listing import Job
from jobboard.services.notification_service import NotificationService, NotificationType
from jobboard.services.reference_data import ReferenceDataService

JOB_STATUSES = ("all", "active", "inactive")


def open_jobs_query(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Active jobs whose closing date (if any) is today or later."""
    today = datetime.combine((now or utcnow()).date(), time.min)
    return {
        "is_active": True,
        "$or": [
            {"closing_date": None},
            {"closing_date": {"$gte": today}},
        ],
    }


def _as_datetime(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def check_job_dates(posted_date: Optional[datetime], closing_date: Optional[datetime]) -> None:
    """
    Raises:
        ValidationFailed: If the job would close before it is posted
    """
    if posted_date and closing_date and closing_date.date() < posted_date.date():
        raise ValidationFailed("Closing date cannot be before the posting date")


class JobService:
    """
    Collections used:
        - jobs: postings
        - companies: name and rating copied onto postings
        - applications: applicant counts, removed with the job
        - saved_jobs: bookmarks removed with the job
        - accounts: password check before deletion
    """

    def __init__(
        self,
        job_repository: Optional[RepositoryInterface] = None,
        company_repository: Optional[RepositoryInterface] = None,
        application_repository: Optional[RepositoryInterface] = None,
        saved_job_repository: Optional[RepositoryInterface] = None,
        account_repository: Optional[RepositoryInterface] = None,
        reference_data: Optional[ReferenceDataService] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.jobs = job_repository or get_repository(Collections.JOBS)
        self.companies = company_repository or get_repository(Collections.COMPANIES)
        self.applications = application_repository or get_repository(Collections.APPLICATIONS)
        self.saved_jobs = saved_job_repository or get_repository(Collections.SAVED_JOBS)
        self.accounts = account_repository or get_repository(Collections.ACCOUNTS)
        self.reference_data = reference_data or ReferenceDataService()
        self.notifications = notifications or NotificationService()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def open_jobs(self, company_id: Any = None) -> List[Job]:
        """All open jobs, newest first, optionally for one company."""
        query = open_jobs_query()
        if company_id:
            query["company_id"] = to_object_id(company_id, "company id")
        docs = self.jobs.find(query, sort=[("posted_date", -1)])
        return [Job.from_document(doc) for doc in docs]

    def _find_job(self, job_id: Any) -> Dict[str, Any]:
        doc = self.jobs.find_one({"_id": to_object_id(job_id, "job id")})
        if not doc:
            raise NotFound("Job not found")
        return doc

    def get_job(self, job_id: Any) -> Dict[str, Any]:
        """One job with the ids needed to edit it."""
        doc = self._find_job(job_id)
        data = Job.from_document(doc).to_dict()
        job_type = doc.get("job_type") or {}
        data["job_type_id"] = str(job_type["id"]) if isinstance(job_type, dict) and job_type.get("id") else None
        data["required_education_level_id"] = doc.get("required_education_level_id")
        return data

    def _owned_job(self, ctx: AuthContext, job_id: Any) -> Dict[str, Any]:
        ctx.require(AccountType.EMPLOYEE)
        company_id = ctx.require_company()
        doc = self._find_job(job_id)
        if str(doc.get("company_id")) != company_id:
            raise PermissionDenied("Unauthorized access to job")
        return doc

    def list_company_jobs(self, ctx: AuthContext, status: str = "all") -> List[Dict[str, Any]]:
        """The caller's company jobs with applicant counts per status."""
        ctx.require(AccountType.EMPLOYEE, AccountType.COMPANY)
        company_id = ctx.require_company()
        if status not in JOB_STATUSES:
            raise ValidationFailed(f"Invalid status: {status}")

        query: Dict[str, Any] = {"company_id": to_object_id(company_id, "company id")}
        if status != "all":
            query["is_active"] = status == "active"
        docs = self.jobs.find(query, sort=[("posted_date", -1)])

        counts = self._applicant_counts([doc["_id"] for doc in docs])
        jobs = []
        for doc in docs:
            data = Job.from_document(doc).to_dict()
            data["applicants"] = counts.get(str(doc["_id"]), _empty_counts())
            jobs.append(data)
        return jobs

    def _applicant_counts(self, job_ids: List[Any]) -> Dict[str, Dict[str, int]]:
        if not job_ids:
            return {}
        rows = self.applications.aggregate([
            {"$match": {"job_id": {"$in": job_ids}}},
            {"$group": {"_id": {"job_id": "$job_id", "status": "$status"}, "count": {"$sum": 1}}},
        ])
        counts: Dict[str, Dict[str, int]] = {}
        for row in rows:
            key = str(row["_id"]["job_id"])
            status = row["_id"].get("status")
            entry = counts.setdefault(key, _empty_counts())
            if status in entry:
                entry[status] += row["count"]
            entry["total"] += row["count"]
        return counts

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _resolve_type(self, job_type_id: str) -> Dict[str, Any]:
        job_type = self.reference_data.job_type(to_object_id(job_type_id, "job type id"))
        return {"id": job_type["_id"], "name": job_type.get("name", "")}

    def _resolve_categories(self, category_ids: List[str]) -> List[Dict[str, Any]]:
        ids = list(dict.fromkeys(to_object_id(c, "category id") for c in category_ids))
        docs = self.reference_data.categories_by_id(ids)
        if len(docs) != len(ids):
            raise ValidationFailed("Invalid job category")
        by_id = {doc["_id"]: doc for doc in docs}
        return [
            {
                "id": category_id,
                "name": by_id[category_id].get("name", ""),
                "field_id": by_id[category_id].get("field_id"),
                "field_name": by_id[category_id].get("field_name", ""),
            }
            for category_id in ids
        ]

    def create_job(self, ctx: AuthContext, data: JobRequest) -> Dict[str, Any]:
        ctx.require(AccountType.EMPLOYEE)
        company_oid = to_object_id(ctx.require_company(), "company id")
        company = self.companies.find_one({"_id": company_oid})
        if not company:
            raise NotFound("Company not found")

        posted_date = _as_datetime(data.posted_date) or datetime.combine(utcnow().date(), time.min)
        closing_date = _as_datetime(data.closing_date)
        check_job_dates(posted_date, closing_date)

        now = utcnow()
        document = {
            "title": data.title.strip(),
            "description": data.description,
            "location": data.location.strip(),
            "salary": data.salary,
            "job_type": self._resolve_type(data.job_type_id),
            "categories": self._resolve_categories(data.category_ids),
            "company_id": company_oid,
            "company_name": company.get("name", ""),
            "company_rating": company.get("rating", 0.0),
            "experience_level_id": data.experience_level_id,
            "required_education_level_id": data.required_education_level_id,
            "posted_date": posted_date,
            "closing_date": closing_date,
            "is_active": data.is_active,
            "created_by": to_object_id(ctx.account_id, "account id"),
            "created_at": now,
            "updated_at": now,
        }
        result = self.jobs.insert_one(document)
        job_id = result.upserted_id
        request_logger(__name__, ctx).info(f"Created job {job_id} for company {company_oid}")

        self.notifications.create(
            ctx.account_id, NotificationType.JOB_POSTED,
            f"Your job posting '{document['title']}' has been published.", job_id,
        )
        return {"job_id": job_id, "message": "Job created successfully"}

    def update_job(self, ctx: AuthContext, job_id: Any, data: JobUpdateRequest) -> Dict[str, Any]:
        existing = self._owned_job(ctx, job_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationFailed("No changes given")

        update: Dict[str, Any] = {}
        for key in ("title", "description", "location", "salary",
                    "experience_level_id", "required_education_level_id"):
            if key in changes:
                update[key] = changes[key]
        if "job_type_id" in changes and changes["job_type_id"]:
            update["job_type"] = self._resolve_type(changes["job_type_id"])
        if "category_ids" in changes and changes["category_ids"]:
            update["categories"] = self._resolve_categories(changes["category_ids"])
        if "posted_date" in changes:
            update["posted_date"] = _as_datetime(changes["posted_date"])
        if "closing_date" in changes:
            update["closing_date"] = _as_datetime(changes["closing_date"])

        check_job_dates(
            update.get("posted_date", existing.get("posted_date")),
            update.get("closing_date", existing.get("closing_date")),
        )

        update["updated_at"] = utcnow()
        self.jobs.update_one({"_id": existing["_id"]}, {"$set": update})
        request_logger(__name__, ctx).info(f"Updated job {existing['_id']}: {sorted(update)}")

        self.notifications.create(
            ctx.account_id, NotificationType.JOB_UPDATED,
            f"Your job posting '{update.get('title', existing.get('title', ''))}' has been updated.",
            str(existing["_id"]),
        )
        return {"job_id": str(existing["_id"]), "message": "Job updated successfully"}

    def set_job_active(self, ctx: AuthContext, job_id: Any, is_active: bool) -> Dict[str, Any]:
        existing = self._owned_job(ctx, job_id)
        self.jobs.update_one(
            {"_id": existing["_id"]},
            {"$set": {"is_active": bool(is_active), "updated_at": utcnow()}},
        )

        state = "enabled" if is_active else "disabled"
        notification_type = NotificationType.JOB_UPDATED if is_active else NotificationType.JOB_DISABLED
        self.notifications.create(
            ctx.account_id, notification_type,
            f"Your job posting '{existing.get('title', '')}' has been {state}.",
            str(existing["_id"]),
        )
        return {"job_id": str(existing["_id"]), "is_active": bool(is_active), "message": f"Job {state} successfully"}

    def delete_job(self, ctx: AuthContext, job_id: Any, password: str) -> Dict[str, Any]:
        """Delete a job with its applications and bookmarks. Requires the caller's password."""
        account = self.accounts.find_one({"_id": to_object_id(ctx.account_id, "account id")})
        confirm_password(account, password)

        existing = self._owned_job(ctx, job_id)
        self.jobs.delete_one({"_id": existing["_id"]})
        removed = self.applications.delete_many({"job_id": existing["_id"]})
        self.saved_jobs.delete_many({"job_id": existing["_id"]})
        request_logger(__name__, ctx).info(
            f"Deleted job {existing['_id']} "
            f"and {removed.modified_count} applications"
        )
        return {"job_id": str(existing["_id"]), "message": "Job deleted successfully"}

    def company_stats(self, ctx: AuthContext) -> Dict[str, Any]:
        """Job and applicant totals for the employee dashboard."""
        ctx.require(AccountType.EMPLOYEE, AccountType.COMPANY)
        company_oid = to_object_id(ctx.require_company(), "company id")

        rows = self.applications.aggregate([
            {"$match": {"company_id": company_oid}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ])
        applicants = _empty_counts()
        for row in rows:
            if row["_id"] in applicants:
                applicants[row["_id"]] = row["count"]
            applicants["total"] += row["count"]

        return {
            "total_jobs": self.jobs.count_documents({"company_id": company_oid}),
            "active_jobs": self.jobs.count_documents({"company_id": company_oid, "is_active": True}),
            "applicants": applicants,
        }


def _empty_counts() -> Dict[str, int]:
    return {"total": 0, "pending": 0, "accepted": 0, "rejected": 0}
