"""
In-app notifications.

Other services call create() after their main write; a notification that
cannot be stored is logged and dropped so the triggering action still
succeeds.
"""

from typing import Any, Dict, Iterable, List, Optional

from jobboard.common.auth_context import AuthContext
from jobboard.common.error_handling import ValidationFailed, service_operation
from jobboard.common.logger import request_logger
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import serialize_document, to_object_id, utcnow


class NotificationType:
    JOB_APPLICATION = "job_application"
    FOLLOW_COMPANY = "follow_company"
    UNFOLLOW_COMPANY = "unfollow_company"
    PROFILE_UPDATE = "profile_update"
    APPLICATION_STATUS = "application_status"
    JOB_POSTED = "job_posted"
    JOB_UPDATED = "job_updated"
    JOB_DISABLED = "job_disabled"
    NEW_APPLICANT = "new_applicant"
    APPLICANT_UPDATED = "applicant_updated"

    ALL = (
        JOB_APPLICATION, FOLLOW_COMPANY, UNFOLLOW_COMPANY, PROFILE_UPDATE,
        APPLICATION_STATUS, JOB_POSTED, JOB_UPDATED, JOB_DISABLED,
        NEW_APPLICANT, APPLICANT_UPDATED,
    )


class NotificationService:
    def __init__(self, repository: Optional[RepositoryInterface] = None):
        self.repo = repository or get_repository(Collections.NOTIFICATIONS)

    @service_operation("create notification", fallback_value=None)
    def create(
        self,
        account_id: Any,
        notification_type: str,
        message: str,
        reference_id: Any = None,
    ) -> Optional[str]:
        """
        Store a notification for an account.

        Returns:
            The new notification id, or None if it could not be stored
        """
        if notification_type not in NotificationType.ALL:
            raise ValueError(f"Unknown notification type: {notification_type}")

        result = self.repo.insert_one({
            "account_id": to_object_id(account_id, "account id"),
            "type": notification_type,
            "message": message,
            "reference_id": reference_id,
            "is_read": False,
            "created_at": utcnow(),
        })
        return str(result.upserted_id) if result.upserted_id else None

    def notify_many(self, account_ids: Iterable[Any], notification_type: str, message: str, reference_id: Any = None) -> int:
        """Create the same notification for several accounts. Returns how many were stored."""
        stored = 0
        for account_id in account_ids:
            if self.create(account_id, notification_type, message, reference_id) is not None:
                stored += 1
        return stored

    def list_for(self, ctx: AuthContext, unread_only: bool = False, limit: int = 50) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"account_id": to_object_id(ctx.account_id, "account id")}
        if unread_only:
            query["is_read"] = False
        docs = self.repo.find(query, sort=[("created_at", -1)], limit=limit)
        return [serialize_document(doc) for doc in docs]

    def unread_count(self, ctx: AuthContext) -> int:
        return self.repo.count_documents({
            "account_id": to_object_id(ctx.account_id, "account id"),
            "is_read": False,
        })

    def mark_read(self, ctx: AuthContext, notification_ids: Iterable[Any]) -> int:
        """Mark the caller's notifications as read. Returns the number updated."""
        ids = [to_object_id(n, "notification id") for n in notification_ids]
        if not ids:
            raise ValidationFailed("No notification ids given")

        result = self.repo.update_many(
            {"_id": {"$in": ids}, "account_id": to_object_id(ctx.account_id, "account id")},
            {"$set": {"is_read": True}},
        )
        return result.modified_count

    def mark_all_read(self, ctx: AuthContext) -> int:
        result = self.repo.update_many(
            {"account_id": to_object_id(ctx.account_id, "account id"), "is_read": False},
            {"$set": {"is_read": True}},
        )
        request_logger(__name__, ctx).debug(f"Marked {result.modified_count} notifications read")
        return result.modified_count
