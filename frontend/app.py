"""
Flask application for the Job Board.

JSON API for job seekers, employees and companies, plus server-rendered
pages whose job list is driven by HTMX partials.

Every authenticated route receives an explicit AuthContext (`ctx`) built
from the signed session; services never read the session themselves.

Stack: Flask + HTMX + Tailwind CSS (CDN)
"""

import os
import uuid
from functools import wraps
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from flask import Flask, g, jsonify, redirect, render_template, request, session, url_for
from pydantic import BaseModel, ValidationError
from pymongo.errors import PyMongoError

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.config import get_settings, validate_config_on_startup
from jobboard.common.error_handling import AuthenticationFailed, JobBoardError, ValidationFailed
from jobboard.common.logger import get_logger, request_logger, setup_logging
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.models import (
    ApplyRequest,
    JobRequest,
    JobUpdateRequest,
    LoginRequest,
    MarkReadRequest,
    PasswordConfirmation,
    PreferencesRequest,
    ProfileUpdateRequest,
    RateCompanyRequest,
    RegisterCompanyRequest,
    RegisterEmployeeRequest,
    RegisterJobSeekerRequest,
    ResendCodeRequest,
    RespondRequest,
    SaveJobRequest,
    ToggleJobRequest,
    VerifyCodeRequest,
)
from jobboard.services.application_service import ApplicationService
from jobboard.services.auth_service import AuthService
from jobboard.services.company_service import CompanyService
from jobboard.services.email_service import send_verification_email
from jobboard.services.job_listing import (
    RECOMMENDED_MIN_MATCH,
    SALARY_BUCKETS,
    Job,
    JobFilters,
    SortKey,
    filter_and_sort_jobs,
    filter_jobs,
    paginate,
)
from jobboard.services.job_service import JobService
from jobboard.services.jobseeker_service import JobSeekerService
from jobboard.services.notification_service import NotificationService
from jobboard.services.recommendation_service import RecommendationService
from jobboard.services.reference_data import ReferenceDataService

try:
    from version import __version__
    APP_VERSION = __version__
except ImportError:
    APP_VERSION = "dev"

M = TypeVar("M", bound=BaseModel)

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
validate_config_on_startup()

logger = get_logger(__name__)

app = Flask(__name__)

if settings.flask_secret_key:
    app.secret_key = settings.flask_secret_key
else:
    logger.warning("FLASK_SECRET_KEY not set. Generating random key (sessions will not persist between restarts)")
    app.secret_key = os.urandom(24).hex()

app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SECURE"] = settings.is_production
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["PERMANENT_SESSION_LIFETIME"] = 60 * 60 * 24 * 7

MAX_PAGE_SIZE = 100
LOAD_ERROR_MESSAGE = "Could not load data, please try again"

RECOMMENDATION_BANNER = (
    "Recommended jobs are ordered by exact category match, then jobs in the same "
    "field, then company rating, then newest posting."
)


@app.context_processor
def inject_globals():
    """Inject version and the current account into all templates."""
    return {
        "version": APP_VERSION,
        "current_account": session.get("username"),
        "current_account_type": session.get("account_type"),
    }


@app.before_request
def assign_request_id():
    g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex


# ============================================================================
# Repositories and services
# ============================================================================

def _get_repo(collection: str) -> RepositoryInterface:
    """Repository for a collection (patched in tests)."""
    return get_repository(collection)


def _notifications() -> NotificationService:
    return NotificationService(_get_repo(Collections.NOTIFICATIONS))


def _reference_data() -> ReferenceDataService:
    return ReferenceDataService({
        name: _get_repo(name)
        for name in (
            Collections.JOB_TYPES,
            Collections.JOB_CATEGORIES,
            Collections.CATEGORY_FIELDS,
            Collections.EXPERIENCE_LEVELS,
            Collections.EDUCATION_LEVELS,
        )
    })


def _auth_service() -> AuthService:
    return AuthService(
        account_repository=_get_repo(Collections.ACCOUNTS),
        company_repository=_get_repo(Collections.COMPANIES),
        code_repository=_get_repo(Collections.VERIFICATION_CODES),
        settings=settings,
        send_email=send_verification_email,
    )


def _job_service() -> JobService:
    return JobService(
        job_repository=_get_repo(Collections.JOBS),
        company_repository=_get_repo(Collections.COMPANIES),
        application_repository=_get_repo(Collections.APPLICATIONS),
        saved_job_repository=_get_repo(Collections.SAVED_JOBS),
        account_repository=_get_repo(Collections.ACCOUNTS),
        reference_data=_reference_data(),
        notifications=_notifications(),
    )


def _recommendation_service() -> RecommendationService:
    return RecommendationService(
        job_repository=_get_repo(Collections.JOBS),
        account_repository=_get_repo(Collections.ACCOUNTS),
    )


def _application_service() -> ApplicationService:
    return ApplicationService(
        application_repository=_get_repo(Collections.APPLICATIONS),
        job_repository=_get_repo(Collections.JOBS),
        account_repository=_get_repo(Collections.ACCOUNTS),
        notifications=_notifications(),
    )


def _company_service() -> CompanyService:
    return CompanyService(
        company_repository=_get_repo(Collections.COMPANIES),
        rating_repository=_get_repo(Collections.COMPANY_RATINGS),
        follow_repository=_get_repo(Collections.COMPANY_FOLLOWS),
        job_repository=_get_repo(Collections.JOBS),
        notifications=_notifications(),
    )


def _jobseeker_service() -> JobSeekerService:
    return JobSeekerService(
        account_repository=_get_repo(Collections.ACCOUNTS),
        saved_job_repository=_get_repo(Collections.SAVED_JOBS),
        job_repository=_get_repo(Collections.JOBS),
        application_repository=_get_repo(Collections.APPLICATIONS),
        reference_data=_reference_data(),
        notifications=_notifications(),
    )


# ============================================================================
# Authentication
# ============================================================================

def _is_api_request() -> bool:
    return request.path.startswith("/api/")


def current_context() -> Optional[AuthContext]:
    """AuthContext for this request, or None if not signed in."""
    try:
        return AuthContext.from_session(session, request_id=g.get("request_id"))
    except AuthenticationFailed:
        return None


def login_required(*account_types: str):
    """
    Decorator to require a signed-in account, optionally of given types.

    Passes the request's AuthContext to the view as `ctx`.

    For API routes (/api/*): Returns JSON 401/403
    For page routes: Redirects to the login page
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ctx = current_context()
            if ctx is None:
                if _is_api_request():
                    return jsonify({"success": False, "error": "Not authenticated"}), 401
                return redirect(url_for("login_page"))
            if account_types and ctx.account_type not in account_types:
                if _is_api_request():
                    return jsonify({"success": False, "error": "Access denied"}), 403
                return redirect(url_for("index"))
            return f(*args, ctx=ctx, **kwargs)
        return decorated_function
    return decorator


# ============================================================================
# Error handling
# ============================================================================

@app.errorhandler(JobBoardError)
def handle_job_board_error(error: JobBoardError):
    if _is_api_request():
        return jsonify(error.to_dict()), error.status_code
    return render_template("error.html", error=error.message), error.status_code


@app.errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    details = error.errors(include_url=False, include_context=False)
    first = details[0] if details else {}
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return jsonify({"success": False, "error": message, "details": details}), 400


@app.errorhandler(PyMongoError)
def handle_database_error(error: PyMongoError):
    logger.error(f"Database error on {request.path}: {error}")
    if _is_api_request():
        return jsonify({"success": False, "error": LOAD_ERROR_MESSAGE}), 503
    if request.path.startswith("/partials/"):
        return render_template(
            "partials/job_rows.html", jobs=[], pagination=None, error=LOAD_ERROR_MESSAGE, seq=_seq(),
        ), 503
    return render_template("error.html", error=LOAD_ERROR_MESSAGE), 503


# ============================================================================
# Request helpers
# ============================================================================

def _body(model: Type[M]) -> M:
    """Validate the JSON body against a request model."""
    return model.model_validate(request.get_json(silent=True) or {})


def _int_arg(name: str, default: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(minimum, value)
    return min(value, maximum) if maximum is not None else value


def _seq() -> Optional[int]:
    """Client sequence number echoed back so stale responses can be dropped."""
    try:
        return int(request.args["seq"])
    except (KeyError, TypeError, ValueError):
        return None


def _ok(**payload) -> Dict[str, Any]:
    return {"success": True, **payload}


def _listing(
    jobs: Sequence[Job],
    default_sort: SortKey = SortKey.NEWEST,
    keep_order_without_sort: bool = False,
) -> Dict[str, Any]:
    """
    Run jobs through the filter/sort pipeline and paginate.

    With keep_order_without_sort the input order (a ranking) is kept
    unless the request names a sort.
    """
    args = request.args
    filters = JobFilters.from_mapping(args, default_sort)
    search_term = args.get("search", "")

    if keep_order_without_sort and not args.get("sort"):
        visible = filter_jobs(jobs, search_term, filters)
    else:
        visible = filter_and_sort_jobs(jobs, search_term, filters)

    page_size = _int_arg("page_size", settings.jobs_page_size, maximum=MAX_PAGE_SIZE)
    items, pagination = paginate(visible, _int_arg("page", 1), page_size)
    return {"jobs": items, "pagination": pagination, "filters": filters, "seq": _seq()}


def _listing_json(result: Dict[str, Any], extra_by_id: Optional[Dict[str, Dict[str, Any]]] = None, **payload):
    jobs = []
    for job in result["jobs"]:
        data = job.to_dict()
        if extra_by_id and job.id in extra_by_id:
            data.update(extra_by_id[job.id])
        jobs.append(data)
    return jsonify(_ok(jobs=jobs, pagination=result["pagination"], seq=result["seq"], **payload))


def _recommended_jobs(ctx: AuthContext):
    """Recommended jobs above the minimum match, and their ranking extras by id."""
    ranked = [r for r in _recommendation_service().recommended_for(ctx) if (r.job.match or 0) >= RECOMMENDED_MIN_MATCH]
    extras = {
        r.job.id: {"preference_priority": r.preference_priority, "preference_score": r.preference_score}
        for r in ranked
    }
    return [r.job for r in ranked], extras


# ============================================================================
# Auth API
# ============================================================================

_REGISTRATION_MODELS = {
    AccountType.JOBSEEKER: RegisterJobSeekerRequest,
    AccountType.EMPLOYEE: RegisterEmployeeRequest,
    AccountType.COMPANY: RegisterCompanyRequest,
}


@app.route("/api/auth/register/<account_type>", methods=["POST"])
def register(account_type: str):
    """
    Register an account of the given type.

    The account starts unverified; a registration code is e-mailed.
    """
    model = _REGISTRATION_MODELS.get(account_type)
    if model is None:
        raise ValidationFailed(f"Unknown account type: {account_type}")

    data = _body(model)
    service = _auth_service()
    if account_type == AccountType.JOBSEEKER:
        result = service.register_jobseeker(data)
    elif account_type == AccountType.EMPLOYEE:
        result = service.register_employee(data)
    else:
        result = service.register_company(data)
    return jsonify(_ok(**result)), 201


@app.route("/api/auth/login", methods=["POST"])
def api_login():
    data = _body(LoginRequest)
    result = _auth_service().login(data.username, data.password, data.account_type)
    return jsonify(_ok(**result))


@app.route("/api/auth/verify", methods=["POST"])
def verify_registration():
    data = _body(VerifyCodeRequest)
    result = _auth_service().verify_registration(data.account_id, data.code)
    return jsonify(_ok(message="Account verified. You can now sign in.", **result))


@app.route("/api/auth/verify-login", methods=["POST"])
def verify_login():
    """Second login step; on success the session is established."""
    data = _body(VerifyCodeRequest)
    ctx = _auth_service().verify_login(data.account_id, data.code, request_id=g.request_id)

    session.clear()
    session.update(ctx.to_session())
    session.permanent = True

    request_logger(__name__, ctx).info(f"Signed in as {ctx.account_type}")
    return jsonify(_ok(account=ctx.to_session()))


@app.route("/api/auth/resend-code", methods=["POST"])
def resend_code():
    data = _body(ResendCodeRequest)
    return jsonify(_ok(**_auth_service().resend_code(data.account_id, data.purpose)))


@app.route("/api/auth/session", methods=["GET"])
def get_session():
    ctx = current_context()
    if ctx is None:
        return jsonify(_ok(authenticated=False, account=None))
    return jsonify(_ok(authenticated=True, account=ctx.to_session()))


@app.route("/api/auth/logout", methods=["POST"])
def api_logout():
    session.clear()
    return jsonify(_ok(message="Logged out"))


# ============================================================================
# Reference data API
# ============================================================================

@app.route("/api/data/job-types", methods=["GET"])
def get_job_types():
    return jsonify(_ok(job_types=_reference_data().job_types()))


@app.route("/api/data/job-categories", methods=["GET"])
def get_job_categories():
    return jsonify(_ok(categories=_reference_data().job_categories()))


@app.route("/api/data/job-fields", methods=["GET"])
def get_job_fields():
    return jsonify(_ok(fields=_reference_data().category_fields()))


@app.route("/api/data/experience-levels", methods=["GET"])
def get_experience_levels():
    return jsonify(_ok(levels=_reference_data().experience_levels()))


@app.route("/api/data/education-levels", methods=["GET"])
def get_education_levels():
    return jsonify(_ok(levels=_reference_data().education_levels()))


# ============================================================================
# Jobs API
# ============================================================================

@app.route("/api/jobs", methods=["GET"])
@login_required()
def list_jobs(ctx: AuthContext):
    """
    List open jobs through the filter/sort pipeline.

    Query Parameters:
        search: Free text (title, description, company)
        job_type, category, field, location, experience_level: Filters
        salary_min, salary_max: Numeric bounds (override salary_range)
        salary_range: One of the salary buckets ("20001-40000", "80001+")
        sort: newest | oldest | salary_high | salary_low | company_rating
        page, page_size: Pagination
        seq: Client sequence number, echoed back

    Returns:
        JSON with jobs, pagination and seq
    """
    return _listing_json(_listing(_job_service().open_jobs()))


@app.route("/api/guest/jobs", methods=["GET"])
def list_guest_jobs():
    """Same listing as /api/jobs without signing in."""
    return _listing_json(_listing(_job_service().open_jobs()))


@app.route("/api/jobs/recommended", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def list_recommended_jobs(ctx: AuthContext):
    """
    Recommended jobs for the signed-in job seeker.

    Ranked order is kept unless a sort is requested.
    """
    jobs, extras = _recommended_jobs(ctx)
    result = _listing(jobs, default_sort=SortKey.MATCH_HIGH, keep_order_without_sort=True)
    return _listing_json(result, extras, banner=RECOMMENDATION_BANNER)


@app.route("/api/jobs/recent", methods=["GET"])
@login_required()
def list_recent_jobs(ctx: AuthContext):
    limit = _int_arg("limit", 6, maximum=50)
    jobs = _recommendation_service().recent_jobs(limit)
    return jsonify(_ok(jobs=[job.to_dict() for job in jobs]))


@app.route("/api/jobs/<job_id>", methods=["GET"])
@login_required()
def get_job(job_id: str, ctx: AuthContext):
    job = _job_service().get_job(job_id)
    if ctx.is_jobseeker:
        job["application_status"] = _application_service().status_map(ctx).get(job["id"])
        job["saved"] = job["id"] in _jobseeker_service().saved_job_ids(ctx)
    return jsonify(_ok(job=job))


# ============================================================================
# Job seeker API
# ============================================================================

@app.route("/api/jobseeker/applications", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def list_applications(ctx: AuthContext):
    applications = _application_service().list_for_jobseeker(ctx, request.args.get("status"))
    return jsonify(_ok(applications=applications))


@app.route("/api/jobseeker/applications", methods=["POST"])
@login_required(AccountType.JOBSEEKER)
def apply_to_job(ctx: AuthContext):
    data = _body(ApplyRequest)
    result = _application_service().apply(ctx, data.job_id, data.cover_letter)
    return jsonify(_ok(**result)), 201


@app.route("/api/jobseeker/saved-jobs", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def list_saved_jobs(ctx: AuthContext):
    """Saved jobs; most recently saved first unless a sort is requested."""
    jobs = _jobseeker_service().saved_jobs(ctx)
    return _listing_json(_listing(jobs, keep_order_without_sort=True))


@app.route("/api/jobseeker/saved-jobs", methods=["POST"])
@login_required(AccountType.JOBSEEKER)
def save_job(ctx: AuthContext):
    data = _body(SaveJobRequest)
    return jsonify(_ok(**_jobseeker_service().save_job(ctx, data.job_id))), 201


@app.route("/api/jobseeker/saved-jobs/<job_id>", methods=["DELETE"])
@login_required(AccountType.JOBSEEKER)
def unsave_job(job_id: str, ctx: AuthContext):
    return jsonify(_ok(**_jobseeker_service().unsave_job(ctx, job_id)))


@app.route("/api/jobseeker/preferences", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def get_preferences(ctx: AuthContext):
    return jsonify(_ok(preferences=_jobseeker_service().get_preferences(ctx)))


@app.route("/api/jobseeker/preferences", methods=["PUT"])
@login_required(AccountType.JOBSEEKER)
def replace_preferences(ctx: AuthContext):
    data = _body(PreferencesRequest)
    preferences = _jobseeker_service().replace_preferences(ctx, data.category_ids)
    return jsonify(_ok(preferences=preferences, message="Preferences saved"))


@app.route("/api/jobseeker/followed-companies", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def list_followed_companies(ctx: AuthContext):
    return jsonify(_ok(companies=_company_service().followed_companies(ctx)))


@app.route("/api/jobseeker/stats", methods=["GET"])
@login_required(AccountType.JOBSEEKER)
def get_jobseeker_stats(ctx: AuthContext):
    return jsonify(_ok(stats=_jobseeker_service().dashboard_stats(ctx)))


# ============================================================================
# Companies API
# ============================================================================

@app.route("/api/companies/<company_id>", methods=["GET"])
@login_required()
def get_company(company_id: str, ctx: AuthContext):
    return jsonify(_ok(company=_company_service().get_company(company_id, ctx)))


@app.route("/api/companies/<company_id>/jobs", methods=["GET"])
@login_required()
def list_company_open_jobs(company_id: str, ctx: AuthContext):
    """A company's open jobs through the same filter/sort pipeline as /api/jobs."""
    return _listing_json(_listing(_job_service().open_jobs(company_id)))


@app.route("/api/companies/<company_id>/rate", methods=["POST"])
@login_required(AccountType.JOBSEEKER)
def rate_company(company_id: str, ctx: AuthContext):
    data = _body(RateCompanyRequest)
    result = _company_service().rate_company(ctx, company_id, data.rating, data.review_text)
    return jsonify(_ok(**result))


@app.route("/api/companies/<company_id>/follow", methods=["POST"])
@login_required(AccountType.JOBSEEKER)
def follow_company(company_id: str, ctx: AuthContext):
    return jsonify(_ok(**_company_service().follow(ctx, company_id)))


@app.route("/api/companies/<company_id>/follow", methods=["DELETE"])
@login_required(AccountType.JOBSEEKER)
def unfollow_company(company_id: str, ctx: AuthContext):
    return jsonify(_ok(**_company_service().unfollow(ctx, company_id)))


# ============================================================================
# Profile and notifications API (all account types)
# ============================================================================

@app.route("/api/profile", methods=["GET"])
@login_required()
def get_profile(ctx: AuthContext):
    return jsonify(_ok(profile=_jobseeker_service().get_profile(ctx)))


@app.route("/api/profile", methods=["PUT"])
@login_required()
def update_profile(ctx: AuthContext):
    data = _body(ProfileUpdateRequest)
    return jsonify(_ok(profile=_jobseeker_service().update_profile(ctx, data), message="Profile updated"))


@app.route("/api/notifications", methods=["GET"])
@login_required()
def list_notifications(ctx: AuthContext):
    unread_only = request.args.get("unread") in ("1", "true")
    service = _notifications()
    return jsonify(_ok(
        notifications=service.list_for(ctx, unread_only=unread_only),
        unread_count=service.unread_count(ctx),
    ))


@app.route("/api/notifications/count", methods=["GET"])
@login_required()
def count_notifications(ctx: AuthContext):
    return jsonify(_ok(unread_count=_notifications().unread_count(ctx)))


@app.route("/api/notifications/mark-read", methods=["POST"])
@login_required()
def mark_notifications_read(ctx: AuthContext):
    data = _body(MarkReadRequest)
    return jsonify(_ok(updated=_notifications().mark_read(ctx, data.notification_ids)))


@app.route("/api/notifications/mark-all-read", methods=["POST"])
@login_required()
def mark_all_notifications_read(ctx: AuthContext):
    return jsonify(_ok(updated=_notifications().mark_all_read(ctx)))


# ============================================================================
# Employee API
# ============================================================================

@app.route("/api/employee/jobs", methods=["GET"])
@login_required(AccountType.EMPLOYEE, AccountType.COMPANY)
def list_company_jobs(ctx: AuthContext):
    jobs = _job_service().list_company_jobs(ctx, request.args.get("status", "all"))
    return jsonify(_ok(jobs=jobs))


@app.route("/api/employee/jobs", methods=["POST"])
@login_required(AccountType.EMPLOYEE)
def create_job(ctx: AuthContext):
    data = _body(JobRequest)
    return jsonify(_ok(**_job_service().create_job(ctx, data))), 201


@app.route("/api/employee/jobs/<job_id>", methods=["PUT"])
@login_required(AccountType.EMPLOYEE)
def update_job(job_id: str, ctx: AuthContext):
    data = _body(JobUpdateRequest)
    return jsonify(_ok(**_job_service().update_job(ctx, job_id, data)))


@app.route("/api/employee/jobs/<job_id>/toggle", methods=["POST"])
@login_required(AccountType.EMPLOYEE)
def toggle_job(job_id: str, ctx: AuthContext):
    data = _body(ToggleJobRequest)
    return jsonify(_ok(**_job_service().set_job_active(ctx, job_id, data.is_active)))


@app.route("/api/employee/jobs/<job_id>", methods=["DELETE"])
@login_required(AccountType.EMPLOYEE)
def delete_job(job_id: str, ctx: AuthContext):
    data = _body(PasswordConfirmation)
    return jsonify(_ok(**_job_service().delete_job(ctx, job_id, data.password)))


@app.route("/api/employee/applications", methods=["GET"])
@login_required(AccountType.EMPLOYEE, AccountType.COMPANY)
def list_job_requests(ctx: AuthContext):
    applications = _application_service().list_for_company(ctx, request.args.get("status"))
    return jsonify(_ok(applications=applications))


@app.route("/api/employee/applications/respond", methods=["POST"])
@login_required(AccountType.EMPLOYEE)
def respond_to_application(ctx: AuthContext):
    data = _body(RespondRequest)
    result = _application_service().respond(ctx, data.application_id, data.decision, data.password)
    return jsonify(_ok(**result))


@app.route("/api/employee/stats", methods=["GET"])
@login_required(AccountType.EMPLOYEE, AccountType.COMPANY)
def get_employee_stats(ctx: AuthContext):
    return jsonify(_ok(stats=_job_service().company_stats(ctx)))


# ============================================================================
# Health
# ============================================================================

@app.route("/health", methods=["GET"])
def public_health_check():
    """
    Public health endpoint for monitoring.

    No authentication required; returns minimal info.
    """
    try:
        _get_repo(Collections.JOBS).ping()
        mongo_status = "connected"
    except Exception:
        mongo_status = "disconnected"

    return jsonify({
        "status": "healthy" if mongo_status == "connected" else "degraded",
        "version": APP_VERSION,
        "services": {"mongodb": mongo_status},
    })


# ============================================================================
# Pages
# ============================================================================

@app.route("/login", methods=["GET"])
def login_page():
    if current_context() is not None:
        return redirect(url_for("index"))
    return render_template("login.html")


@app.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("login_page"))


@app.route("/")
@login_required()
def index(ctx: AuthContext):
    if ctx.account_type in (AccountType.EMPLOYEE, AccountType.COMPANY):
        return redirect(url_for("employee_jobs_page"))
    recent = _recommendation_service().recent_jobs(6)
    return render_template("index.html", recent_jobs=[job.to_dict() for job in recent])


def _filter_form_context(view: str) -> Dict[str, Any]:
    reference = _reference_data()
    return {
        "view": view,
        "job_types": reference.job_types(),
        "categories": reference.job_categories(),
        "fields": reference.category_fields(),
        "experience_levels": reference.experience_levels(),
        "salary_buckets": list(SALARY_BUCKETS),
        "sort_keys": [key.value for key in SortKey],
    }


@app.route("/jobs")
@login_required()
def jobs_page(ctx: AuthContext):
    return render_template("jobs.html", **_filter_form_context("all"))


@app.route("/jobs/recommended")
@login_required(AccountType.JOBSEEKER)
def recommended_jobs_page(ctx: AuthContext):
    return render_template("jobs.html", banner=RECOMMENDATION_BANNER, **_filter_form_context("recommended"))


@app.route("/jobs/saved")
@login_required(AccountType.JOBSEEKER)
def saved_jobs_page(ctx: AuthContext):
    return render_template("jobs.html", **_filter_form_context("saved"))


@app.route("/partials/job-rows")
@login_required()
def job_rows_partial(ctx: AuthContext):
    """
    Job rows for the filter form.

    The form swaps this partial on every change; the `view` parameter picks
    the source list (all, recommended, saved) and the rest goes through the
    shared pipeline.
    """
    view = request.args.get("view", "all")
    extras: Dict[str, Dict[str, Any]] = {}
    keep_order = False
    default_sort = SortKey.NEWEST

    if view == "recommended" and ctx.is_jobseeker:
        jobs, extras = _recommended_jobs(ctx)
        keep_order = True
        default_sort = SortKey.MATCH_HIGH
    elif view == "saved" and ctx.is_jobseeker:
        jobs = _jobseeker_service().saved_jobs(ctx)
        keep_order = True
    else:
        jobs = _job_service().open_jobs()

    result = _listing(jobs, default_sort=default_sort, keep_order_without_sort=keep_order)
    rows: List[Dict[str, Any]] = []
    for job in result["jobs"]:
        data = job.to_dict()
        data.update(extras.get(job.id, {}))
        rows.append(data)

    return render_template(
        "partials/job_rows.html",
        jobs=rows,
        pagination=result["pagination"],
        seq=result["seq"],
        view=view,
        error=None,
    )


@app.route("/jobs/<job_id>")
@login_required()
def job_detail_page(job_id: str, ctx: AuthContext):
    job = _job_service().get_job(job_id)
    if ctx.is_jobseeker:
        job["application_status"] = _application_service().status_map(ctx).get(job["id"])
        job["saved"] = job["id"] in _jobseeker_service().saved_job_ids(ctx)
    return render_template("job_detail.html", job=job)


@app.route("/employee/jobs")
@login_required(AccountType.EMPLOYEE, AccountType.COMPANY)
def employee_jobs_page(ctx: AuthContext):
    status = request.args.get("status", "all")
    jobs = _job_service().list_company_jobs(ctx, status)
    return render_template("employee_jobs.html", jobs=jobs, status=status)


if __name__ == "__main__":
    port = int(os.getenv("FLASK_PORT", "5000"))
    app.run(debug=not settings.is_production, host="0.0.0.0", port=port)
