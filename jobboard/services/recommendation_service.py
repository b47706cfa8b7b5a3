"""
Recommendation Ordering

Orders jobs for a job seeker who has declared category preferences:

    1. exact category match        (preference_priority 3, score 100)
    2. same field, other category  (preference_priority 2, score 50)
    3. company rating, highest first
    4. posted date, newest first

Jobs matching neither a preferred category nor a preferred field are not
recommended. Each recommended job also gets a match percentage from
calculate_job_match(), which the recommended page can filter and sort on
through the shared listing pipeline.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.error_handling import NotFound
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import to_object_id
from jobboard.services.job_listing import Job
from jobboard.services.job_service import open_jobs_query

PRIORITY_EXACT_CATEGORY = 3
PRIORITY_SAME_FIELD = 2
PRIORITY_NONE = 0

_PRIORITY_SCORES = {
    PRIORITY_EXACT_CATEGORY: 100,
    PRIORITY_SAME_FIELD: 50,
    PRIORITY_NONE: 0,
}

# Weights of the match score components
MATCH_WEIGHTS = {
    "field": 0.4,
    "experience": 0.3,
    "education": 0.2,
    "category": 0.1,
}

VOCATIONAL_EDUCATION_LEVEL = 7
ASSOCIATE_EDUCATION_LEVEL = 2


@dataclass(frozen=True)
class JobSeekerPreference:
    """A job seeker's preferred categories and the fields they belong to."""
    category_ids: FrozenSet[str] = frozenset()
    field_ids: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, category_ids: Iterable[Any] = (), field_ids: Iterable[Any] = ()) -> "JobSeekerPreference":
        return cls(
            category_ids=frozenset(str(c) for c in category_ids),
            field_ids=frozenset(str(f) for f in field_ids),
        )

    @property
    def is_empty(self) -> bool:
        return not self.category_ids and not self.field_ids


@dataclass(frozen=True)
class SeekerProfile:
    """Inputs to the match score."""
    preference: JobSeekerPreference = field(default_factory=JobSeekerPreference)
    experience_level_id: Optional[str] = None
    education_level_id: Optional[str] = None

    @classmethod
    def from_account(cls, account: Mapping[str, Any]) -> "SeekerProfile":
        preferences = account.get("preferences") or {}
        profile = account.get("profile") or {}
        return cls(
            preference=JobSeekerPreference.of(
                preferences.get("category_ids") or [],
                preferences.get("field_ids") or [],
            ),
            experience_level_id=_optional_str(profile.get("experience_level_id")),
            education_level_id=_optional_str(profile.get("education_level_id")),
        )


@dataclass(frozen=True)
class RankedJob:
    """A recommended job with the signals that placed it."""
    job: Job
    preference_priority: int

    @property
    def preference_score(self) -> int:
        return _PRIORITY_SCORES[self.preference_priority]

    def to_dict(self) -> Dict[str, Any]:
        data = self.job.to_dict()
        data["preference_priority"] = self.preference_priority
        data["preference_score"] = self.preference_score
        return data


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


# ============================================================================
# Ranking
# ============================================================================

def preference_priority(job: Job, preference: JobSeekerPreference) -> int:
    """How strongly a job matches the declared preferences."""
    if preference.category_ids.intersection(job.category_ids):
        return PRIORITY_EXACT_CATEGORY
    if preference.field_ids.intersection(job.field_ids):
        return PRIORITY_SAME_FIELD
    return PRIORITY_NONE


def rank_recommended_jobs(
    jobs: Sequence[Job],
    preference: JobSeekerPreference,
) -> List[RankedJob]:
    """
    Keep the jobs matching a preference and order them.

    Order: preference priority, then company rating, then posted date
    (newest first, undated last). Ties keep input order. The input list is
    not modified.
    """
    ranked = []
    for job in jobs:
        priority = preference_priority(job, preference)
        if priority > PRIORITY_NONE:
            ranked.append(RankedJob(job=job, preference_priority=priority))

    def key(item: RankedJob):
        posted = item.job.posted_date
        return (
            -item.preference_priority,
            -(item.job.company_rating or 0.0),
            posted is None,
            -posted.timestamp() if posted else 0.0,
        )

    return sorted(ranked, key=key)


# ============================================================================
# Match score
# ============================================================================

def experience_level_match(seeker_level: int, required_level: int) -> int:
    """
    Compatibility of experience levels.

    Levels: 1 entry, 2 mid, 3 senior, 4 managerial, 5 executive.
    """
    if seeker_level == required_level:
        return 100

    if seeker_level > required_level:
        return {1: 90, 2: 75, 3: 60}.get(seeker_level - required_level, 45)

    return {1: 70, 2: 40}.get(required_level - seeker_level, 20)


def education_level_match(seeker_level: int, required_level: Optional[int] = None) -> int:
    """
    Compatibility of education levels.

    Levels: 1 high school, 2 associate, 3 bachelor's, 4 master's,
    5 doctorate, 6 PhD, 7 vocational (counted as associate). A job without
    a requirement is treated as requiring high school.
    """
    required = required_level or 1
    if seeker_level == VOCATIONAL_EDUCATION_LEVEL:
        seeker_level = ASSOCIATE_EDUCATION_LEVEL
    if required == VOCATIONAL_EDUCATION_LEVEL:
        required = ASSOCIATE_EDUCATION_LEVEL

    if seeker_level >= required:
        return 100

    return {1: 75, 2: 50}.get(required - seeker_level, 25)


def calculate_job_match(profile: SeekerProfile, job: Job) -> int:
    """
    Weighted match percentage between a job seeker and a job.

    Only criteria that apply (the seeker declared something and the job
    carries the matching data) count, and the result is normalized over
    their weights. A job with at least one applicable criterion scores at
    least 10; with none it scores 0.
    """
    total = 0.0
    applicable = 0.0
    preference = profile.preference

    if preference.field_ids and job.field_ids:
        matching = sum(1 for field_id in job.field_ids if field_id in preference.field_ids)
        score = 0.0
        if matching:
            denominator = min(len(preference.field_ids), len(job.field_ids))
            score = min(matching / denominator * 100, 100)
        total += score * MATCH_WEIGHTS["field"]
        applicable += MATCH_WEIGHTS["field"]

    seeker_experience = _as_int(profile.experience_level_id)
    required_experience = _as_int(job.experience_level_id)
    if seeker_experience is not None and required_experience is not None:
        total += experience_level_match(seeker_experience, required_experience) * MATCH_WEIGHTS["experience"]
        applicable += MATCH_WEIGHTS["experience"]

    seeker_education = _as_int(profile.education_level_id)
    if seeker_education is not None:
        required_education = _as_int(job.required_education_level_id)
        total += education_level_match(seeker_education, required_education) * MATCH_WEIGHTS["education"]
        applicable += MATCH_WEIGHTS["education"]

    if preference.category_ids and job.category_ids:
        matching = sum(1 for category_id in job.category_ids if category_id in preference.category_ids)
        score = matching / len(job.category_ids) * 100 if matching else 0.0
        total += score * MATCH_WEIGHTS["category"]
        applicable += MATCH_WEIGHTS["category"]

    if applicable == 0:
        return 0

    return max(_round_half_up(total / applicable), 10)


# ============================================================================
# Service
# ============================================================================

class RecommendationService:
    """
    Loads preferences and open jobs, then ranks.

    Collections used:
        - accounts: job seeker preferences and profile
        - jobs: open job postings
    """

    def __init__(
        self,
        job_repository: Optional[RepositoryInterface] = None,
        account_repository: Optional[RepositoryInterface] = None,
    ):
        self.jobs = job_repository or get_repository(Collections.JOBS)
        self.accounts = account_repository or get_repository(Collections.ACCOUNTS)

    def seeker_profile(self, ctx: AuthContext) -> SeekerProfile:
        ctx.require(AccountType.JOBSEEKER)
        account = self.accounts.find_one({"_id": to_object_id(ctx.account_id, "account id")})
        if not account:
            raise NotFound("Job seeker not found")
        return SeekerProfile.from_account(account)

    def recommended_for(self, ctx: AuthContext, limit: int = 0) -> List[RankedJob]:
        """
        Recommended open jobs for the calling job seeker.

        Returns an empty list when no preferences are declared.
        """
        profile = self.seeker_profile(ctx)
        preference = profile.preference
        if preference.is_empty:
            request_logger(__name__, ctx).info("No preferences declared, nothing to recommend")
            return []

        query = open_jobs_query()
        query["$and"] = [{
            "$or": [
                {"categories.id": {"$in": [to_object_id(c) for c in preference.category_ids]}},
                {"categories.field_id": {"$in": [to_object_id(f) for f in preference.field_ids]}},
            ]
        }]
        documents = self.jobs.find(query)

        jobs = [Job.from_document(doc) for doc in documents]
        jobs = [replace(job, match=calculate_job_match(profile, job)) for job in jobs]
        ranked = rank_recommended_jobs(jobs, preference)

        request_logger(__name__, ctx).info(
            f"Ranked {len(ranked)} recommended jobs "
            f"from {len(documents)} candidates"
        )
        return ranked[:limit] if limit > 0 else ranked

    def recent_jobs(self, limit: int = 6) -> List[Job]:
        """Newest open jobs across all companies."""
        documents = self.jobs.find(
            open_jobs_query(),
            sort=[("posted_date", -1)],
            limit=limit,
        )
        return [Job.from_document(doc) for doc in documents]
