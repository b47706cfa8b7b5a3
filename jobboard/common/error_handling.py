"""
Centralized error handling for the job board.

Provides the exception hierarchy raised by services (each carrying the HTTP
status the web layer should answer with) and a decorator for side-effect
operations whose failure must not abort the main action.
"""

import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")


class JobBoardError(Exception):
    """
    Base class for expected, user-facing failures.

    Attributes:
        message: Human readable message returned to the client
        status_code: HTTP status the web layer responds with
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error envelope used by the API."""
        return {"success": False, "error": self.message}


class ValidationFailed(JobBoardError):
    """Request data is missing or malformed."""
    status_code = 400


class AuthenticationFailed(JobBoardError):
    """Credentials or session are missing or invalid."""
    status_code = 401


class PermissionDenied(JobBoardError):
    """Authenticated, but not allowed to touch the resource."""
    status_code = 403


class NotFound(JobBoardError):
    """Referenced record does not exist."""
    status_code = 404


class Conflict(JobBoardError):
    """Request conflicts with current state (duplicates, already processed)."""
    status_code = 409


def service_operation(
    operation_name: str,
    fallback_value: Any = None,
    reraise: bool = False,
):
    """
    Decorator for secondary operations with consistent error handling.

    Used for notifications and e-mail delivery: a failure is logged and
    the fallback value returned, so the action that triggered it still
    succeeds.

    Args:
        operation_name: Human-readable operation name (e.g., "send notification")
        fallback_value: Value to return on failure (default: None)
        reraise: If True, re-raises the exception after logging

    Usage:
        @service_operation("create notification")
        def create(self, account_id, ...):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"[{operation_name}] Failed: {e}")
                if reraise:
                    raise
                return fallback_value

        return wrapper

    return decorator
