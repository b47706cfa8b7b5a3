"""
Pydantic request models shared by the API routes and services.

A body that fails validation is answered with 400 before any service runs.
"""

import re
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AccountTypeName = Literal["jobseeker", "employee", "company"]
CodePurpose = Literal["registration", "login"]
Decision = Literal["accepted", "rejected"]


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


class _Credentials(BaseModel):
    """Login name and password chosen at registration."""

    email: str = Field(..., description="Contact and login e-mail")
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not re.match(r"^[A-Za-z0-9_.-]+$", v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v


class RegisterJobSeekerRequest(_Credentials):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    experience_level_id: Optional[int] = Field(None, ge=1, le=5)
    education_level_id: Optional[int] = Field(None, ge=1, le=7)


class RegisterEmployeeRequest(_Credentials):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    company_id: str = Field(..., description="Company the employee works for")
    position_name: str = Field(..., min_length=1)


class RegisterCompanyRequest(_Credentials):
    """The credentials' e-mail doubles as the company e-mail."""

    company_name: str = Field(..., min_length=1)
    company_phone: str = Field(..., min_length=1)
    company_website: Optional[str] = None
    company_description: Optional[str] = None
    city: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username or e-mail")
    password: str = Field(..., min_length=1)
    account_type: AccountTypeName


class VerifyCodeRequest(BaseModel):
    account_id: str
    code: str = Field(..., pattern=r"^\d{6}$")


class ResendCodeRequest(BaseModel):
    account_id: str
    purpose: CodePurpose = "registration"


class JobRequest(BaseModel):
    """Fields of a job posting. Dates default to today / none."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    salary: Optional[str] = None
    job_type_id: str
    category_ids: List[str] = Field(..., min_length=1)
    experience_level_id: Optional[int] = Field(None, ge=1, le=5)
    required_education_level_id: Optional[int] = Field(None, ge=1, le=7)
    posted_date: Optional[date] = None
    closing_date: Optional[date] = None
    is_active: bool = True


class JobUpdateRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    salary: Optional[str] = None
    job_type_id: Optional[str] = None
    category_ids: Optional[List[str]] = Field(None, min_length=1)
    experience_level_id: Optional[int] = Field(None, ge=1, le=5)
    required_education_level_id: Optional[int] = Field(None, ge=1, le=7)
    posted_date: Optional[date] = None
    closing_date: Optional[date] = None

    @field_validator("title", "description", "location", "job_type_id", "category_ids", "posted_date", mode="before")
    @classmethod
    def reject_null(cls, v):
        # Omitted fields stay unchanged; these ones cannot be cleared
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ToggleJobRequest(BaseModel):
    is_active: bool


class PasswordConfirmation(BaseModel):
    password: str = Field(..., min_length=1)


class ApplyRequest(BaseModel):
    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=5000)


class RespondRequest(BaseModel):
    application_id: str
    decision: Decision
    password: str = Field(..., min_length=1)


class RateCompanyRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(None, max_length=2000)


class PreferencesRequest(BaseModel):
    category_ids: List[str] = Field(default_factory=list)


class SaveJobRequest(BaseModel):
    job_id: str


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)
    position_name: Optional[str] = None
    experience_level_id: Optional[int] = Field(None, ge=1, le=5)
    education_level_id: Optional[int] = Field(None, ge=1, le=7)


class MarkReadRequest(BaseModel):
    notification_ids: List[str] = Field(..., min_length=1)
