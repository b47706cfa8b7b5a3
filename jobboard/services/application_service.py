"""
Job applications: applying, tracking and employer responses.

An application moves pending -> accepted | rejected exactly once. A job
seeker may apply again to the same job only after a rejection; the new
application carries the next attempt_number.
"""

from typing import Any, Dict, List, Optional

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.error_handling import Conflict, NotFound, PermissionDenied, ValidationFailed
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import serialize_document, to_object_id, utcnow
from jobboard.services.auth_service import confirm_password
from jobboard.services.notification_service import NotificationService, NotificationType


class ApplicationStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    ALL = (PENDING, ACCEPTED, REJECTED)


ACCEPTED_MESSAGE = (
    "Congratulations! Your application has been accepted. "
    "We will contact you soon with next steps."
)
REJECTED_MESSAGE = (
    "Thank you for your interest in this position. After careful consideration, "
    "we have decided to move forward with other candidates."
)
POSITION_UNAVAILABLE_MESSAGE = "This position is no longer available."


def _check_status(status: Optional[str]) -> Optional[str]:
    if status in (None, "", "all"):
        return None
    if status not in ApplicationStatus.ALL:
        raise ValidationFailed(f"Invalid status: {status}")
    return status


def _full_name(account: Dict[str, Any]) -> str:
    profile = account.get("profile") or {}
    name = " ".join(p for p in (profile.get("first_name"), profile.get("last_name")) if p)
    return name or account.get("username", "")


class ApplicationService:
    """
    Collections used:
        - applications: one document per attempt
        - jobs: target job (must be active to apply)
        - accounts: applicant details, company employees, password checks
    """

    def __init__(
        self,
        application_repository: Optional[RepositoryInterface] = None,
        job_repository: Optional[RepositoryInterface] = None,
        account_repository: Optional[RepositoryInterface] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.applications = application_repository or get_repository(Collections.APPLICATIONS)
        self.jobs = job_repository or get_repository(Collections.JOBS)
        self.accounts = account_repository or get_repository(Collections.ACCOUNTS)
        self.notifications = notifications or NotificationService()

    def _latest(self, job_id: Any, jobseeker_id: Any) -> Optional[Dict[str, Any]]:
        return self.applications.find_one(
            {"job_id": job_id, "jobseeker_id": jobseeker_id},
            sort=[("attempt_number", -1)],
        )

    def apply(self, ctx: AuthContext, job_id: Any, cover_letter: Optional[str] = None) -> Dict[str, Any]:
        """
        Submit an application.

        Raises:
            NotFound: Unknown job
            ValidationFailed: Job is no longer active
            Conflict: A pending or accepted application already exists
        """
        ctx.require(AccountType.JOBSEEKER)
        seeker_id = to_object_id(ctx.account_id, "account id")
        job = self.jobs.find_one({"_id": to_object_id(job_id, "job id")})
        if not job:
            raise NotFound("Job not found")
        if not job.get("is_active", True):
            raise ValidationFailed("This job is no longer accepting applications")

        account = self.accounts.find_one({"_id": seeker_id})
        if not account:
            raise NotFound("Job seeker not found")

        latest = self._latest(job["_id"], seeker_id)
        if latest and latest.get("status") == ApplicationStatus.PENDING:
            raise Conflict("You have already applied to this job")
        if latest and latest.get("status") == ApplicationStatus.ACCEPTED:
            raise Conflict("Your application for this job has already been accepted")
        attempt_number = (latest.get("attempt_number") or 1) + 1 if latest else 1

        result = self.applications.insert_one({
            "job_id": job["_id"],
            "jobseeker_id": seeker_id,
            "company_id": job.get("company_id"),
            "job_title": job.get("title", ""),
            "company_name": job.get("company_name", ""),
            "applicant_name": _full_name(account),
            "applicant_email": account.get("email"),
            "cover_letter": cover_letter,
            "status": ApplicationStatus.PENDING,
            "attempt_number": attempt_number,
            "applied_at": utcnow(),
            "response_message": None,
            "response_date": None,
        })
        application_id = result.upserted_id
        request_logger(__name__, ctx).info(
            f"Application {application_id} for job {job['_id']} "
            f"(attempt {attempt_number})"
        )

        title = job.get("title", "")
        self.notifications.create(
            ctx.account_id, NotificationType.JOB_APPLICATION,
            f"You applied for '{title}' at {job.get('company_name', '')}.", application_id,
        )
        employee_ids = [
            doc["_id"] for doc in self.accounts.find(
                {"company_id": job.get("company_id"), "account_type": AccountType.EMPLOYEE},
                projection={"_id": 1},
            )
        ]
        employee_type = NotificationType.NEW_APPLICANT if attempt_number == 1 else NotificationType.APPLICANT_UPDATED
        self.notifications.notify_many(
            employee_ids, employee_type,
            f"{_full_name(account)} applied for '{title}'.", application_id,
        )

        message = "Application submitted successfully"
        if attempt_number > 1:
            message = f"Application resubmitted successfully (attempt {attempt_number})"
        return {"application_id": application_id, "attempt_number": attempt_number, "message": message}

    def list_for_jobseeker(self, ctx: AuthContext, status: Optional[str] = None) -> List[Dict[str, Any]]:
        ctx.require(AccountType.JOBSEEKER)
        query: Dict[str, Any] = {"jobseeker_id": to_object_id(ctx.account_id, "account id")}
        status = _check_status(status)
        if status:
            query["status"] = status
        docs = self.applications.find(query, sort=[("applied_at", -1)])
        return [serialize_document(doc) for doc in docs]

    def status_map(self, ctx: AuthContext) -> Dict[str, str]:
        """Job id -> status of the caller's latest application to it."""
        ctx.require(AccountType.JOBSEEKER)
        docs = self.applications.find(
            {"jobseeker_id": to_object_id(ctx.account_id, "account id")},
            projection={"job_id": 1, "status": 1, "attempt_number": 1},
            sort=[("attempt_number", 1)],
        )
        return {str(doc["job_id"]): doc.get("status") for doc in docs}

    def list_for_company(self, ctx: AuthContext, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Applications to the caller's company jobs, newest first."""
        ctx.require(AccountType.EMPLOYEE, AccountType.COMPANY)
        query: Dict[str, Any] = {"company_id": to_object_id(ctx.require_company(), "company id")}
        status = _check_status(status)
        if status:
            query["status"] = status
        docs = self.applications.find(query, sort=[("applied_at", -1)])
        return [serialize_document(doc) for doc in docs]

    def respond(self, ctx: AuthContext, application_id: Any, decision: str, password: str) -> Dict[str, Any]:
        """
        Accept or reject a pending application.

        Accepting an application to a job that has since been deactivated
        (or deleted) records a rejection instead.

        Raises:
            AuthenticationFailed: Wrong password
            PermissionDenied: Application belongs to another company
            Conflict: Application was already processed
        """
        ctx.require(AccountType.EMPLOYEE)
        if decision not in (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED):
            raise ValidationFailed(f"Invalid decision: {decision}")

        employee = self.accounts.find_one({"_id": to_object_id(ctx.account_id, "account id")})
        confirm_password(employee, password)

        application = self.applications.find_one({"_id": to_object_id(application_id, "application id")})
        if not application:
            raise NotFound("Application not found")
        if str(application.get("company_id")) != ctx.require_company():
            raise PermissionDenied("Unauthorized access to application")
        if application.get("status") != ApplicationStatus.PENDING:
            raise Conflict("Application has already been processed")

        message = ACCEPTED_MESSAGE if decision == ApplicationStatus.ACCEPTED else REJECTED_MESSAGE
        if decision == ApplicationStatus.ACCEPTED:
            job = self.jobs.find_one({"_id": application.get("job_id")}, projection={"is_active": 1})
            if not job or not job.get("is_active", True):
                decision = ApplicationStatus.REJECTED
                message = POSITION_UNAVAILABLE_MESSAGE

        result = self.applications.update_one(
            {"_id": application["_id"], "status": ApplicationStatus.PENDING},
            {"$set": {
                "status": decision,
                "response_message": message,
                "response_date": utcnow(),
                "responded_by": to_object_id(ctx.account_id, "account id"),
            }},
        )
        # Another employee answered between the read and the write
        if result.modified_count == 0:
            raise Conflict("Application has already been processed")
        request_logger(__name__, ctx).info(f"Application {application['_id']} {decision}")

        title = application.get("job_title", "")
        self.notifications.create(
            application["jobseeker_id"], NotificationType.APPLICATION_STATUS,
            f"Your application for '{title}' was {decision}. {message}", str(application["_id"]),
        )
        self.notifications.create(
            ctx.account_id, NotificationType.APPLICANT_UPDATED,
            f"You {decision} {application.get('applicant_name', 'an applicant')} for '{title}'.",
            str(application["_id"]),
        )
        return {"application_id": str(application["_id"]), "status": decision, "message": message}
