"""
Job seeker data: category preferences, saved jobs, profile and dashboard.
"""

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.error_handling import Conflict, NotFound, ValidationFailed
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import serialize_document, to_object_id, utcnow
from jobboard.models import ProfileUpdateRequest
from jobboard.services.job_listing import Job
from jobboard.services.notification_service import NotificationService, NotificationType
from jobboard.services.reference_data import ReferenceDataService

# Profile fields each account type may change
PROFILE_FIELDS = {
    AccountType.JOBSEEKER: {
        "first_name", "last_name", "middle_name", "phone", "address", "bio",
        "experience_level_id", "education_level_id",
    },
    AccountType.EMPLOYEE: {
        "first_name", "last_name", "middle_name", "phone", "address", "bio", "position_name",
    },
    AccountType.COMPANY: {"phone", "address", "bio"},
}

_HIDDEN_ACCOUNT_FIELDS = {"password_hash"}


def valid_category_ids(values: Iterable[Any]) -> List[ObjectId]:
    """Parseable ids in first-seen order, duplicates removed."""
    ids: List[ObjectId] = []
    for value in values:
        if value is None or not ObjectId.is_valid(str(value)):
            continue
        oid = ObjectId(str(value))
        if oid not in ids:
            ids.append(oid)
    return ids


class JobSeekerService:
    """
    Collections used:
        - accounts: profile and preferences
        - saved_jobs: {jobseeker_id, job_id, saved_at}
        - jobs, applications, notifications (dashboard counts)
    """

    def __init__(
        self,
        account_repository: Optional[RepositoryInterface] = None,
        saved_job_repository: Optional[RepositoryInterface] = None,
        job_repository: Optional[RepositoryInterface] = None,
        application_repository: Optional[RepositoryInterface] = None,
        reference_data: Optional[ReferenceDataService] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.accounts = account_repository or get_repository(Collections.ACCOUNTS)
        self.saved = saved_job_repository or get_repository(Collections.SAVED_JOBS)
        self.jobs = job_repository or get_repository(Collections.JOBS)
        self.applications = application_repository or get_repository(Collections.APPLICATIONS)
        self.reference_data = reference_data or ReferenceDataService()
        self.notifications = notifications or NotificationService()

    def _account(self, ctx: AuthContext) -> Dict[str, Any]:
        account = self.accounts.find_one({"_id": to_object_id(ctx.account_id, "account id")})
        if not account:
            raise NotFound("Account not found")
        return account

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def get_preferences(self, ctx: AuthContext) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        preferences = self._account(ctx).get("preferences") or {}
        category_ids = preferences.get("category_ids") or []
        categories = self.reference_data.categories_by_id(category_ids)
        return {
            "category_ids": [str(c) for c in category_ids],
            "field_ids": [str(f) for f in preferences.get("field_ids") or []],
            "categories": [serialize_document(c) for c in categories],
        }

    def replace_preferences(self, ctx: AuthContext, category_ids: Iterable[Any]) -> Dict[str, Any]:
        """
        Replace the whole preference set.

        Unparseable or unknown ids are dropped; at least one known category
        must remain. Field ids are derived from the categories.

        Raises:
            ValidationFailed: If no valid category is given
        """
        ctx.require(AccountType.JOBSEEKER)
        ids = valid_category_ids(category_ids)
        if not ids:
            raise ValidationFailed("At least one valid job category is required")

        found = {doc["_id"]: doc for doc in self.reference_data.categories_by_id(ids)}
        kept = [oid for oid in ids if oid in found]
        if not kept:
            raise ValidationFailed("At least one valid job category is required")

        field_ids: List[Any] = []
        for oid in kept:
            field_id = found[oid].get("field_id")
            if field_id is not None and field_id not in field_ids:
                field_ids.append(field_id)

        self.accounts.update_one(
            {"_id": to_object_id(ctx.account_id, "account id")},
            {"$set": {
                "preferences": {"category_ids": kept, "field_ids": field_ids},
                "updated_at": utcnow(),
            }},
        )
        request_logger(__name__, ctx).info(f"Saved {len(kept)} category preferences")
        return {
            "category_ids": [str(c) for c in kept],
            "field_ids": [str(f) for f in field_ids],
        }

    # ------------------------------------------------------------------
    # Saved jobs
    # ------------------------------------------------------------------

    def save_job(self, ctx: AuthContext, job_id: Any) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        job_oid = to_object_id(job_id, "job id")
        if not self.jobs.find_one({"_id": job_oid}, projection={"_id": 1}):
            raise NotFound("Job not found")

        result = self.saved.update_one(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id"), "job_id": job_oid},
            {"$setOnInsert": {"saved_at": utcnow()}},
            upsert=True,
        )
        if not result.upserted_id:
            raise Conflict("Job is already saved")
        return {"job_id": str(job_oid), "saved": True}

    def unsave_job(self, ctx: AuthContext, job_id: Any) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        job_oid = to_object_id(job_id, "job id")
        result = self.saved.delete_one(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id"), "job_id": job_oid}
        )
        if result.modified_count == 0:
            raise NotFound("Saved job not found")
        return {"job_id": str(job_oid), "saved": False}

    def saved_jobs(self, ctx: AuthContext) -> List[Job]:
        """Saved jobs, most recently saved first. Deleted jobs are skipped."""
        ctx.require(AccountType.JOBSEEKER)
        saved = self.saved.find(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id")},
            sort=[("saved_at", -1)],
        )
        if not saved:
            return []

        docs = {doc["_id"]: doc for doc in self.jobs.find({"_id": {"$in": [s["job_id"] for s in saved]}})}
        return [Job.from_document(docs[s["job_id"]]) for s in saved if s["job_id"] in docs]

    def saved_job_ids(self, ctx: AuthContext) -> List[str]:
        ctx.require(AccountType.JOBSEEKER)
        saved = self.saved.find(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id")},
            projection={"job_id": 1},
        )
        return [str(s["job_id"]) for s in saved]

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, ctx: AuthContext) -> Dict[str, Any]:
        account = self._account(ctx)
        data = serialize_document({k: v for k, v in account.items() if k not in _HIDDEN_ACCOUNT_FIELDS})
        return data

    def update_profile(self, ctx: AuthContext, data: ProfileUpdateRequest) -> Dict[str, Any]:
        """
        Change profile fields allowed for the caller's account type.

        Raises:
            ValidationFailed: Nothing to change, or a field not allowed
        """
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationFailed("No profile changes given")

        allowed = PROFILE_FIELDS.get(ctx.account_type, set())
        rejected = sorted(set(changes) - allowed)
        if rejected:
            raise ValidationFailed(f"Fields cannot be changed: {', '.join(rejected)}")

        update = {f"profile.{key}": value for key, value in changes.items()}
        update["updated_at"] = utcnow()
        result = self.accounts.update_one({"_id": to_object_id(ctx.account_id, "account id")}, {"$set": update})
        if result.matched_count == 0:
            raise NotFound("Account not found")

        self.notifications.create(
            ctx.account_id, NotificationType.PROFILE_UPDATE, "Your profile has been updated.",
        )
        return self.get_profile(ctx)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard_stats(self, ctx: AuthContext) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        seeker_id = to_object_id(ctx.account_id, "account id")
        rows = self.applications.aggregate([
            {"$match": {"jobseeker_id": seeker_id}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ])
        by_status = {"pending": 0, "accepted": 0, "rejected": 0}
        for row in rows:
            if row["_id"] in by_status:
                by_status[row["_id"]] = row["count"]

        return {
            "applications": dict(by_status, total=sum(by_status.values())),
            "saved_jobs": self.saved.count_documents({"jobseeker_id": seeker_id}),
            "unread_notifications": self.notifications.unread_count(ctx),
        }
