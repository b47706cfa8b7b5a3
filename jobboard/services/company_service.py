"""
Company pages, ratings and follows.

A company's rating is the average of its job seekers' ratings (1-5, one per
job seeker, rounded to 2 decimals). It is copied onto the company's jobs so
listings can sort by it without a join.
"""

from typing import Any, Dict, List, Optional

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.error_handling import Conflict, NotFound, ValidationFailed
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import serialize_document, to_object_id, utcnow
from jobboard.services.job_service import open_jobs_query
from jobboard.services.job_listing import Job
from jobboard.services.notification_service import NotificationService, NotificationType

MIN_RATING = 1
MAX_RATING = 5


class CompanyService:
    """
    Collections used:
        - companies
        - company_ratings: {company_id, jobseeker_id, rating, review_text}
        - company_follows: {company_id, jobseeker_id, followed_at}
        - jobs: open jobs shown on the company page, rating copies
    """

    def __init__(
        self,
        company_repository: Optional[RepositoryInterface] = None,
        rating_repository: Optional[RepositoryInterface] = None,
        follow_repository: Optional[RepositoryInterface] = None,
        job_repository: Optional[RepositoryInterface] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.companies = company_repository or get_repository(Collections.COMPANIES)
        self.ratings = rating_repository or get_repository(Collections.COMPANY_RATINGS)
        self.follows = follow_repository or get_repository(Collections.COMPANY_FOLLOWS)
        self.jobs = job_repository or get_repository(Collections.JOBS)
        self.notifications = notifications or NotificationService()

    def _find_company(self, company_id: Any) -> Dict[str, Any]:
        company = self.companies.find_one({"_id": to_object_id(company_id, "company id")})
        if not company:
            raise NotFound("Company not found")
        return company

    def get_company(self, company_id: Any, ctx: Optional[AuthContext] = None) -> Dict[str, Any]:
        """Company details with its open jobs and follower count."""
        company = self._find_company(company_id)

        query = open_jobs_query()
        query["company_id"] = company["_id"]
        jobs = [Job.from_document(doc).to_dict() for doc in self.jobs.find(query, sort=[("posted_date", -1)])]

        data = serialize_document(company)
        data["jobs"] = jobs
        data["follower_count"] = self.follows.count_documents({"company_id": company["_id"]})
        if ctx is not None and ctx.is_jobseeker:
            seeker_id = to_object_id(ctx.account_id, "account id")
            key = {"company_id": company["_id"], "jobseeker_id": seeker_id}
            data["is_following"] = self.follows.find_one(key) is not None
            own = self.ratings.find_one(key)
            data["my_rating"] = own.get("rating") if own else None
        return data

    def rate_company(
        self,
        ctx: AuthContext,
        company_id: Any,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record (or replace) the caller's rating and refresh the average.

        Raises:
            ValidationFailed: Rating outside 1-5
            NotFound: Unknown company
        """
        ctx.require(AccountType.JOBSEEKER)
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationFailed("Rating must be between 1 and 5")

        company = self._find_company(company_id)
        now = utcnow()
        self.ratings.update_one(
            {"company_id": company["_id"], "jobseeker_id": to_object_id(ctx.account_id, "account id")},
            {
                "$set": {"rating": rating, "review_text": review_text, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

        average, count = self._recompute_rating(company["_id"])
        request_logger(__name__, ctx).info(
            f"Company {company['_id']} rated {rating}, "
            f"average now {average} over {count}"
        )
        return {"company_id": str(company["_id"]), "rating": average, "rating_count": count}

    def _recompute_rating(self, company_oid: Any):
        rows = self.ratings.aggregate([
            {"$match": {"company_id": company_oid}},
            {"$group": {"_id": None, "average": {"$avg": "$rating"}, "count": {"$sum": 1}}},
        ])
        if rows:
            average = round(float(rows[0]["average"]), 2)
            count = int(rows[0]["count"])
        else:
            average, count = 0.0, 0

        self.companies.update_one(
            {"_id": company_oid},
            {"$set": {"rating": average, "rating_count": count}},
        )
        self.jobs.update_many({"company_id": company_oid}, {"$set": {"company_rating": average}})
        return average, count

    def follow(self, ctx: AuthContext, company_id: Any) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        company = self._find_company(company_id)
        result = self.follows.update_one(
            {"company_id": company["_id"], "jobseeker_id": to_object_id(ctx.account_id, "account id")},
            {"$setOnInsert": {"followed_at": utcnow()}},
            upsert=True,
        )
        if not result.upserted_id:
            raise Conflict("Already following this company")

        self.notifications.create(
            ctx.account_id, NotificationType.FOLLOW_COMPANY,
            f"You are now following {company.get('name', 'this company')}.", str(company["_id"]),
        )
        return {"company_id": str(company["_id"]), "following": True}

    def unfollow(self, ctx: AuthContext, company_id: Any) -> Dict[str, Any]:
        ctx.require(AccountType.JOBSEEKER)
        company = self._find_company(company_id)
        result = self.follows.delete_one(
            {"company_id": company["_id"], "jobseeker_id": to_object_id(ctx.account_id, "account id")}
        )
        if result.modified_count == 0:
            raise NotFound("Not following this company")

        self.notifications.create(
            ctx.account_id, NotificationType.UNFOLLOW_COMPANY,
            f"You unfollowed {company.get('name', 'this company')}.", str(company["_id"]),
        )
        return {"company_id": str(company["_id"]), "following": False}

    def followed_companies(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        """Companies the caller follows, most recently followed first."""
        ctx.require(AccountType.JOBSEEKER)
        follows = self.follows.find(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id")},
            sort=[("followed_at", -1)],
        )
        if not follows:
            return []

        companies = {
            doc["_id"]: doc
            for doc in self.companies.find({"_id": {"$in": [f["company_id"] for f in follows]}})
        }
        result = []
        for follow in follows:
            company = companies.get(follow["company_id"])
            if company is None:
                continue
            data = serialize_document(company)
            data["followed_at"] = follow.get("followed_at").isoformat() if follow.get("followed_at") else None
            result.append(data)
        return result
