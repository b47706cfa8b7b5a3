"""
Job Filter/Sort Pipeline

The single implementation of job list filtering and ordering used by every
listing surface (all jobs, recommended jobs, saved jobs, company pages and
the guest view).

Everything here is pure: functions take already-fetched jobs and return a
new list. Malformed values (salary text, dates) degrade to "absent" instead
of raising.

Usage:
    jobs = [Job.from_document(doc) for doc in docs]
    filters = JobFilters.from_mapping(request.args)
    visible = filter_and_sort_jobs(jobs, request.args.get("search", ""), filters)
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from jobboard.common.utils import parse_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

# First amount in a salary string: "50,000", "1.5", "50k"
_SALARY_AMOUNT = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([kK])?")

# Salary buckets offered by the listing filter form
SALARY_BUCKETS: Dict[str, Tuple[Optional[float], Optional[float]]] = {
    "0-20000": (None, 20000),
    "20001-40000": (20001, 40000),
    "40001-60000": (40001, 60000),
    "60001-80000": (60001, 80000),
    "80001+": (80001, None),
}

# Minimum match score for a job to show on the recommended view
RECOMMENDED_MIN_MATCH = 20


class SortKey(str, Enum):
    """Orderings offered by the listing pages."""
    NEWEST = "newest"
    OLDEST = "oldest"
    SALARY_HIGH = "salary_high"
    SALARY_LOW = "salary_low"
    COMPANY_RATING = "company_rating"
    MATCH_HIGH = "match_high"
    MATCH_LOW = "match_low"


@dataclass(frozen=True)
class Job:
    """
    A job record as seen by the listing pipeline.

    Category and field memberships hold both ids and names so a filter can
    be given either.
    """
    id: str
    title: str
    description: str = ""
    location: str = ""
    salary: Any = None
    posted_date: Optional[datetime] = None
    closing_date: Optional[datetime] = None
    job_type: str = ""
    category_ids: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    field_ids: Tuple[str, ...] = ()
    fields: Tuple[str, ...] = ()
    company_id: str = ""
    company_name: str = ""
    company_rating: float = 0.0
    is_active: bool = True
    experience_level_id: Optional[str] = None
    required_education_level_id: Optional[str] = None
    match: Optional[int] = None

    @property
    def field(self) -> str:
        """Primary field name (the field of the first category)."""
        return self.fields[0] if self.fields else ""

    @property
    def numeric_salary(self) -> Optional[float]:
        return parse_salary(self.salary)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Job":
        """
        Build a Job from a stored job document.

        Expected shape (all keys optional except _id/title):
            {"_id", "title", "description", "location", "salary",
             "posted_date", "closing_date",
             "job_type": {"id", "name"} | str,
             "categories": [{"id", "name", "field_id", "field_name"}],
             "company_id", "company_name", "company_rating",
             "is_active", "experience_level_id", "required_education_level_id",
             "match"}
        """
        job_type = doc.get("job_type") or ""
        if isinstance(job_type, Mapping):
            job_type = job_type.get("name") or ""

        category_ids: List[str] = []
        category_names: List[str] = []
        field_ids: List[str] = []
        field_names: List[str] = []
        for category in doc.get("categories") or []:
            if not isinstance(category, Mapping):
                continue
            if category.get("id") is not None:
                category_ids.append(str(category["id"]))
            if category.get("name"):
                category_names.append(str(category["name"]))
            if category.get("field_id") is not None:
                field_ids.append(str(category["field_id"]))
            if category.get("field_name"):
                field_names.append(str(category["field_name"]))

        return cls(
            id=str(doc.get("_id", doc.get("id", ""))),
            title=doc.get("title") or "",
            description=doc.get("description") or "",
            location=doc.get("location") or "",
            salary=doc.get("salary"),
            posted_date=parse_date(doc.get("posted_date")),
            closing_date=parse_date(doc.get("closing_date")),
            job_type=str(job_type),
            category_ids=tuple(category_ids),
            categories=tuple(category_names),
            field_ids=tuple(field_ids),
            fields=tuple(field_names),
            company_id=str(doc.get("company_id") or ""),
            company_name=doc.get("company_name") or "",
            company_rating=_to_float(doc.get("company_rating")) or 0.0,
            is_active=bool(doc.get("is_active", True)),
            experience_level_id=_optional_str(doc.get("experience_level_id")),
            required_education_level_id=_optional_str(doc.get("required_education_level_id")),
            match=_to_int(doc.get("match")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation used by the API and templates."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "salary": self.salary,
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
            "closing_date": self.closing_date.isoformat() if self.closing_date else None,
            "type": self.job_type,
            "categories": list(self.categories),
            "category_ids": list(self.category_ids),
            "field": self.field,
            "field_ids": list(self.field_ids),
            "company_id": self.company_id,
            "company_name": self.company_name,
            "company_rating": self.company_rating,
            "is_active": self.is_active,
            "experience_level_id": self.experience_level_id,
            "match": self.match,
        }


@dataclass
class JobFilters:
    """
    Discrete filter selections plus the chosen ordering.

    Every filter is optional; None (or empty string) means "not applied".
    """
    job_type: Optional[str] = None
    category: Optional[str] = None
    field: Optional[str] = None
    location: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    experience_level: Optional[str] = None
    min_match: Optional[int] = None
    sort: SortKey = SortKey.NEWEST

    @staticmethod
    def salary_bucket_bounds(bucket: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
        """Translate a salary bucket ("20001-40000", "80001+") into (min, max)."""
        if not bucket or bucket == "all":
            return None, None
        return SALARY_BUCKETS.get(bucket, (None, None))

    @classmethod
    def from_salary_bucket(cls, bucket: Optional[str], **kwargs) -> "JobFilters":
        salary_min, salary_max = cls.salary_bucket_bounds(bucket)
        return cls(salary_min=salary_min, salary_max=salary_max, **kwargs)

    @classmethod
    def from_mapping(
        cls,
        params: Mapping[str, Any],
        default_sort: SortKey = SortKey.NEWEST,
    ) -> "JobFilters":
        """
        Build filters from query parameters.

        Lenient, like the listing form: "all" and empty
        values mean unset, unparseable numbers are ignored, and an unknown
        sort falls back to default_sort. An explicit salary_min/salary_max
        wins over a salary_range bucket.
        """
        def text(name: str) -> Optional[str]:
            value = params.get(name)
            if value is None:
                return None
            value = str(value).strip()
            if not value or value.lower() == "all":
                return None
            return value

        bucket_min, bucket_max = cls.salary_bucket_bounds(text("salary_range"))
        salary_min = _to_float(text("salary_min"))
        salary_max = _to_float(text("salary_max"))

        try:
            sort = SortKey(text("sort") or default_sort.value)
        except ValueError:
            logger.debug(f"Unknown sort '{params.get('sort')}', using {default_sort.value}")
            sort = default_sort

        return cls(
            job_type=text("job_type"),
            category=text("category"),
            field=text("field"),
            location=text("location"),
            salary_min=salary_min if salary_min is not None else bucket_min,
            salary_max=salary_max if salary_max is not None else bucket_max,
            experience_level=text("experience_level"),
            min_match=_to_int(text("min_match")),
            sort=sort,
        )

    def is_default(self) -> bool:
        """True when no filter is applied and the sort is the default."""
        return self == JobFilters(sort=SortKey.NEWEST)


# ============================================================================
# Parsing
# ============================================================================

def parse_salary(value: Any) -> Optional[float]:
    """
    Parse a salary value into a number.

    Numbers pass through. Text uses its first amount, so a range such as
    "30,000 - 40,000" yields its lower end; a "k" suffix multiplies by 1000.
    Anything without digits ("Negotiable", None) yields None.

    >>> parse_salary("₱50,000")
    50000.0
    >>> parse_salary("50k")
    50000.0
    >>> parse_salary("Salary not specified") is None
    True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    match = _SALARY_AMOUNT.search(value)
    if not match:
        return None
    try:
        amount = float(match.group(1).replace(",", ""))
    except ValueError:
        return None
    if match.group(2):
        amount *= 1000
    return amount


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


# ============================================================================
# Predicates
# ============================================================================

def matches_search(job: Job, search_term: str) -> bool:
    """Case-insensitive substring match on title, description or company name."""
    term = search_term.strip().lower()
    if not term:
        return True
    return (
        term in job.title.lower()
        or term in job.description.lower()
        or term in job.company_name.lower()
    )


def matches_filters(job: Job, filters: JobFilters) -> bool:
    """All active filters must hold (AND)."""
    if filters.job_type and job.job_type != filters.job_type:
        return False

    if filters.category and not _member(filters.category, job.category_ids, job.categories):
        return False

    if filters.field and not _member(filters.field, job.field_ids, job.fields):
        return False

    if filters.location and filters.location.lower() not in job.location.lower():
        return False

    if filters.experience_level and str(job.experience_level_id) != str(filters.experience_level):
        return False

    if filters.min_match is not None and (job.match or 0) < filters.min_match:
        return False

    if filters.salary_min is not None or filters.salary_max is not None:
        salary = job.numeric_salary
        # A job without a usable salary never satisfies an active bound
        if salary is None:
            return False
        if filters.salary_min is not None and salary < filters.salary_min:
            return False
        if filters.salary_max is not None and salary > filters.salary_max:
            return False

    return True


def _member(wanted: str, ids: Sequence[str], names: Sequence[str]) -> bool:
    wanted_lower = wanted.lower()
    return wanted in ids or any(name.lower() == wanted_lower for name in names)


# ============================================================================
# Sorting
# ============================================================================

def _sort_value(job: Job, sort: SortKey) -> Optional[float]:
    if sort in (SortKey.NEWEST, SortKey.OLDEST):
        return job.posted_date.timestamp() if job.posted_date else None
    if sort in (SortKey.SALARY_HIGH, SortKey.SALARY_LOW):
        return job.numeric_salary
    if sort == SortKey.COMPANY_RATING:
        return job.company_rating or 0.0
    if sort in (SortKey.MATCH_HIGH, SortKey.MATCH_LOW):
        return float(job.match or 0)
    return None


_DESCENDING = {SortKey.NEWEST, SortKey.SALARY_HIGH, SortKey.COMPANY_RATING, SortKey.MATCH_HIGH}


def sort_jobs(jobs: Iterable[Job], sort: SortKey) -> List[Job]:
    """
    Order jobs by a single key.

    Jobs lacking the key (no posted date, no numeric salary) go last in
    either direction, keeping their input order. Ties keep input order.
    """
    present: List[Tuple[float, Job]] = []
    missing: List[Job] = []
    for job in jobs:
        value = _sort_value(job, sort)
        if value is None:
            missing.append(job)
        else:
            present.append((value, job))

    present.sort(key=lambda pair: pair[0], reverse=sort in _DESCENDING)
    return [job for _, job in present] + missing


def filter_jobs(
    jobs: Sequence[Job],
    search_term: str = "",
    filters: Optional[JobFilters] = None,
) -> List[Job]:
    """Matching jobs in input order (used where the input is already ranked)."""
    filters = filters or JobFilters()
    search_term = search_term or ""
    return [
        job for job in jobs
        if matches_search(job, search_term) and matches_filters(job, filters)
    ]


def filter_and_sort_jobs(
    jobs: Sequence[Job],
    search_term: str = "",
    filters: Optional[JobFilters] = None,
) -> List[Job]:
    """
    Produce the display-ordered subset of jobs.

    Args:
        jobs: Jobs to filter (not mutated)
        search_term: Free text matched against title, description, company
        filters: Filter selections and sort key (defaults: none, newest)

    Returns:
        New list of matching jobs in display order
    """
    filters = filters or JobFilters()
    return sort_jobs(filter_jobs(jobs, search_term, filters), filters.sort)


# ============================================================================
# Pagination
# ============================================================================

def paginate(items: Sequence[T], page: int = 1, page_size: int = 10) -> Tuple[List[T], Dict[str, Any]]:
    """
    Slice a result list into one page.

    Args:
        items: Full ordered result
        page: 1-based page number (clamped to the valid range)
        page_size: Items per page (minimum 1)

    Returns:
        (page_items, pagination metadata)
    """
    page_size = max(1, page_size)
    total_count = len(items)
    total_pages = max(1, math.ceil(total_count / page_size))
    page = min(max(1, page), total_pages)

    start = (page - 1) * page_size
    return list(items[start:start + page_size]), {
        "page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_prev": page > 1,
        "has_next": page < total_pages,
    }
