"""
Account registration and two-step login.

Flow:
    register -> 6-digit registration code by e-mail -> verify_registration
    login    -> 6-digit login code by e-mail        -> verify_login -> session

Codes are single use and expire (registration 10 minutes, login 5 minutes
by default). An unverified account that logs in gets a fresh registration
code instead of a login code.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Union

from werkzeug.security import check_password_hash, generate_password_hash

from jobboard.common.auth_context import AccountType, AuthContext
from jobboard.common.config import Settings, get_settings
from jobboard.common.error_handling import AuthenticationFailed, Conflict, NotFound, ValidationFailed
from jobboard.common.repositories import Collections, RepositoryInterface, get_repository
from jobboard.common.utils import to_object_id, utcnow
from jobboard.models import (
    RegisterCompanyRequest,
    RegisterEmployeeRequest,
    RegisterJobSeekerRequest,
)
from jobboard.services.email_service import PURPOSE_LOGIN, PURPOSE_REGISTRATION, send_verification_email

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired verification code"


def generate_code() -> str:
    """Random 6-digit numeric code."""
    return str(secrets.randbelow(900000) + 100000)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(account: Dict[str, Any], password: str) -> bool:
    stored = account.get("password_hash")
    return bool(stored) and check_password_hash(stored, password)


def confirm_password(account: Optional[Dict[str, Any]], password: str) -> None:
    """
    Re-authenticate the caller before a sensitive action.

    Raises:
        AuthenticationFailed: If the account is missing or the password is wrong
    """
    if not account or not verify_password(account, password):
        raise AuthenticationFailed("Invalid password")


class AuthService:
    """
    Collections used:
        - accounts: one document per account, with account_type
        - companies: company records (employees must reference one)
        - verification_codes: pending codes with purpose and expiry
    """

    def __init__(
        self,
        account_repository: Optional[RepositoryInterface] = None,
        company_repository: Optional[RepositoryInterface] = None,
        code_repository: Optional[RepositoryInterface] = None,
        settings: Optional[Settings] = None,
        send_email: Optional[Callable[..., bool]] = None,
    ):
        self.accounts = account_repository or get_repository(Collections.ACCOUNTS)
        self.companies = company_repository or get_repository(Collections.COMPANIES)
        self.codes = code_repository or get_repository(Collections.VERIFICATION_CODES)
        self.settings = settings or get_settings()
        self.send_email = send_email or send_verification_email

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _ensure_unique(self, email: str, username: str) -> None:
        """
        Raises:
            Conflict: If the e-mail and/or username is taken
        """
        existing = self.accounts.find(
            {"$or": [{"email": email}, {"username": username}]},
            projection={"email": 1, "username": 1},
        )
        email_taken = any(acc.get("email") == email for acc in existing)
        username_taken = any(acc.get("username") == username for acc in existing)

        if email_taken and username_taken:
            raise Conflict("Email and username are already registered")
        if email_taken:
            raise Conflict("Email is already registered")
        if username_taken:
            raise Conflict("Username is already taken")

    def _create_account(self, account_type: str, email: str, username: str, password: str, **extra) -> str:
        now = utcnow()
        document = {
            "account_type": account_type,
            "email": email,
            "username": username,
            "password_hash": hash_password(password),
            "is_verified": False,
            "created_at": now,
            "updated_at": now,
        }
        document.update(extra)
        result = self.accounts.insert_one(document)
        account_id = result.upserted_id
        logger.info(f"Created {account_type} account {account_id} ({username})")

        self.issue_code(account_id, email, PURPOSE_REGISTRATION)
        return account_id

    def register_jobseeker(self, data: RegisterJobSeekerRequest) -> Dict[str, Any]:
        self._ensure_unique(data.email, data.username)
        profile = data.model_dump(exclude={"email", "username", "password"})
        if profile.get("date_of_birth"):
            profile["date_of_birth"] = profile["date_of_birth"].isoformat()

        account_id = self._create_account(
            AccountType.JOBSEEKER, data.email, data.username, data.password,
            profile=profile,
            preferences={"category_ids": [], "field_ids": []},
        )
        return self._registered(account_id, data.email)

    def register_employee(self, data: RegisterEmployeeRequest) -> Dict[str, Any]:
        self._ensure_unique(data.email, data.username)

        company_id = to_object_id(data.company_id, "company id")
        company = self.companies.find_one({"_id": company_id})
        if not company:
            raise ValidationFailed("Invalid company ID")

        profile = data.model_dump(exclude={"email", "username", "password", "company_id"})
        account_id = self._create_account(
            AccountType.EMPLOYEE, data.email, data.username, data.password,
            company_id=company_id,
            profile=profile,
        )
        return self._registered(account_id, data.email)

    def register_company(self, data: RegisterCompanyRequest) -> Dict[str, Any]:
        if self.companies.find_one({"email": data.email}):
            raise Conflict("Company email is already registered")
        self._ensure_unique(data.email, data.username)

        result = self.companies.insert_one({
            "name": data.company_name,
            "email": data.email,
            "phone": data.company_phone,
            "website": data.company_website,
            "description": data.company_description,
            "city": data.city,
            "rating": 0.0,
            "rating_count": 0,
            "created_at": utcnow(),
        })
        company_id = to_object_id(result.upserted_id, "company id")

        account_id = self._create_account(
            AccountType.COMPANY, data.email, data.username, data.password,
            company_id=company_id,
            profile={"company_name": data.company_name},
        )
        response = self._registered(account_id, data.email)
        response["company_id"] = str(company_id)
        return response

    @staticmethod
    def _registered(account_id: str, email: str) -> Dict[str, Any]:
        return {
            "account_id": str(account_id),
            "email": email,
            "requires_verification": True,
            "verification_type": PURPOSE_REGISTRATION,
            "message": "Registration successful. Please check your email for the verification code.",
        }

    # ------------------------------------------------------------------
    # Codes
    # ------------------------------------------------------------------

    def _ttl(self, purpose: str) -> timedelta:
        if purpose == PURPOSE_REGISTRATION:
            return timedelta(minutes=self.settings.verification_code_ttl_minutes)
        return timedelta(minutes=self.settings.login_code_ttl_minutes)

    def issue_code(self, account_id: Any, email: str, purpose: str) -> str:
        """Replace any pending code of this purpose with a new one and e-mail it."""
        account_oid = to_object_id(account_id, "account id")
        now = utcnow()

        self.codes.update_many(
            {"account_id": account_oid, "purpose": purpose, "used": False},
            {"$set": {"used": True, "superseded_at": now}},
        )
        code = generate_code()
        self.codes.insert_one({
            "account_id": account_oid,
            "code": code,
            "purpose": purpose,
            "used": False,
            "created_at": now,
            "expires_at": now + self._ttl(purpose),
        })

        self.send_email(email, code, purpose)
        return code

    def _consume_code(self, account_id: Any, code: str, purpose: str) -> None:
        """
        Mark a matching, unexpired, unused code as used.

        Raises:
            ValidationFailed: If no such code exists
        """
        now = utcnow()
        result = self.codes.update_one(
            {
                "account_id": to_object_id(account_id, "account id"),
                "code": str(code).strip(),
                "purpose": purpose,
                "used": False,
                "expires_at": {"$gt": now},
            },
            {"$set": {"used": True, "used_at": now}},
        )
        if result.modified_count == 0:
            raise ValidationFailed(INVALID_CODE_MESSAGE)

    def _get_account(self, account_id: Any) -> Dict[str, Any]:
        account = self.accounts.find_one({"_id": to_object_id(account_id, "account id")})
        if not account:
            raise NotFound("Account not found")
        return account

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username_or_email: str, password: str, account_type: str) -> Dict[str, Any]:
        """
        First login step: check the password and send a code.

        Raises:
            AuthenticationFailed: Unknown account, wrong type or wrong password
        """
        identifier = username_or_email.strip()
        account = self.accounts.find_one({
            "$or": [{"username": identifier}, {"email": identifier.lower()}],
            "account_type": account_type,
        })
        if not account or not verify_password(account, password):
            logger.info(f"Failed login for '{identifier}' as {account_type}")
            raise AuthenticationFailed("Invalid credentials")

        account_id = str(account["_id"])
        if not account.get("is_verified"):
            self.issue_code(account_id, account["email"], PURPOSE_REGISTRATION)
            return {
                "account_id": account_id,
                "email": account["email"],
                "requires_verification": True,
                "verification_type": PURPOSE_REGISTRATION,
                "message": "Account not verified. Verification code sent to your email.",
            }

        self.issue_code(account_id, account["email"], PURPOSE_LOGIN)
        return {
            "account_id": account_id,
            "email": account["email"],
            "requires_verification": True,
            "verification_type": PURPOSE_LOGIN,
            "message": "Login verification code sent to your email",
        }

    def verify_registration(self, account_id: Any, code: str) -> Dict[str, Any]:
        account = self._get_account(account_id)
        self._consume_code(account["_id"], code, PURPOSE_REGISTRATION)
        self.accounts.update_one(
            {"_id": account["_id"]},
            {"$set": {"is_verified": True, "verified_at": utcnow()}},
        )
        logger.info(f"Verified account {account['_id']}")
        return {"account_id": str(account["_id"]), "verified": True}

    def verify_login(self, account_id: Any, code: str, request_id: Optional[str] = None) -> AuthContext:
        """Second login step. Returns the identity to store in the session."""
        account = self._get_account(account_id)
        if not account.get("is_verified"):
            raise AuthenticationFailed("Account is not verified")
        self._consume_code(account["_id"], code, PURPOSE_LOGIN)

        self.accounts.update_one({"_id": account["_id"]}, {"$set": {"last_login_at": utcnow()}})
        company_id = account.get("company_id")
        kwargs = {"request_id": request_id} if request_id else {}
        return AuthContext(
            account_id=str(account["_id"]),
            account_type=account["account_type"],
            username=account.get("username", ""),
            company_id=str(company_id) if company_id else None,
            **kwargs,
        )

    def resend_code(self, account_id: Union[str, Any], purpose: str) -> Dict[str, Any]:
        account = self._get_account(account_id)
        if purpose == PURPOSE_REGISTRATION and account.get("is_verified"):
            raise Conflict("Account is already verified")
        if purpose == PURPOSE_LOGIN and not account.get("is_verified"):
            raise ValidationFailed("Account is not verified")

        self.issue_code(account["_id"], account["email"], purpose)
        return {"account_id": str(account["_id"]), "verification_type": purpose, "message": "Verification code sent"}
