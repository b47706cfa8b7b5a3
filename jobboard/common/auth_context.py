"""
Request-scoped authentication context.

Built once per request from the signed session and passed explicitly to
every service call that acts on behalf of a user.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .error_handling import AuthenticationFailed, PermissionDenied


class AccountType:
    """The three kinds of account. Each account has exactly one."""
    JOBSEEKER = "jobseeker"
    EMPLOYEE = "employee"
    COMPANY = "company"

    ALL = (JOBSEEKER, EMPLOYEE, COMPANY)


@dataclass(frozen=True)
class AuthContext:
    """
    Identity of the caller for one request.

    Attributes:
        account_id: Account document id (string form)
        account_type: One of AccountType
        username: Login name, for display and logging
        company_id: Company the account belongs to (employees and companies)
        request_id: Correlation id for logging
    """
    account_id: str
    account_type: str
    username: str = ""
    company_id: Optional[str] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_jobseeker(self) -> bool:
        return self.account_type == AccountType.JOBSEEKER

    @property
    def is_employee(self) -> bool:
        return self.account_type == AccountType.EMPLOYEE

    def require(self, *account_types: str) -> "AuthContext":
        """
        Ensure the caller is one of the given account types.

        Raises:
            PermissionDenied: If the account type is not allowed
        """
        if account_types and self.account_type not in account_types:
            raise PermissionDenied(
                f"This action requires a {' or '.join(account_types)} account"
            )
        return self

    def require_company(self) -> str:
        """Return the caller's company id, or fail if it has none."""
        if not self.company_id:
            raise PermissionDenied("Account is not linked to a company")
        return self.company_id

    def to_session(self) -> Dict[str, Any]:
        """Fields persisted in the signed session cookie."""
        return {
            "account_id": self.account_id,
            "account_type": self.account_type,
            "username": self.username,
            "company_id": self.company_id,
        }

    @classmethod
    def from_session(cls, session: Mapping[str, Any], request_id: Optional[str] = None) -> "AuthContext":
        """
        Rebuild the context from session data.

        Raises:
            AuthenticationFailed: If the session holds no account
        """
        account_id = session.get("account_id")
        account_type = session.get("account_type")
        if not account_id or account_type not in AccountType.ALL:
            raise AuthenticationFailed("Not authenticated")

        return cls(
            account_id=str(account_id),
            account_type=account_type,
            username=session.get("username") or "",
            company_id=session.get("company_id"),
            request_id=request_id or uuid.uuid4().hex,
        )
