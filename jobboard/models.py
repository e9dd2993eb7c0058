"""Domain models for the job board access core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class Role(str, Enum):
    """Account roles. Values match the labels shown to users."""

    GUEST = "Guest"
    JOB_SEEKER = "Job Seeker"
    JOB_POSTER = "Job Poster"
    REFERRER = "Referrer"
    ADMINISTRATOR = "Administrator"

    @classmethod
    def parse(cls, value: object) -> "Role":
        if isinstance(value, Role):
            return value
        text = str(value or "").strip()
        for role in cls:
            if role.value.lower() == text.lower() or role.name.lower() == text.lower():
                return role
        raise ValueError(f"Unknown role '{value}'")


# Roles a visitor may pick on the registration form.
SELF_REGISTERABLE_ROLES: Tuple[Role, ...] = (
    Role.JOB_SEEKER,
    Role.JOB_POSTER,
    Role.REFERRER,
)


class AccountStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @classmethod
    def parse(cls, value: object) -> "AccountStatus":
        if isinstance(value, AccountStatus):
            return value
        text = str(value or "").strip().lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        raise ValueError(f"Unknown account status '{value}'")


JOB_TYPES: Tuple[str, ...] = ("Full-time", "Part-time", "Contract", "Temporary", "Internship")
EXPERIENCE_LEVELS: Tuple[str, ...] = (
    "Entry-level",
    "Mid-level",
    "Senior-level",
    "Director",
    "Executive",
)


@dataclass(frozen=True)
class AccountSummary:
    """Public projection of an account. Never carries credentials."""

    id: int
    email: str
    name: Optional[str]
    image: Optional[str]
    role: Role
    status: AccountStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMINISTRATOR


@dataclass(frozen=True)
class AccountWithSecrets(AccountSummary):
    """Account projection used only by authentication and the gate."""

    password_hash: Optional[str] = None
    referral_code: Optional[str] = None
    referral_expires_at: Optional[datetime] = None

    def summary(self) -> AccountSummary:
        return AccountSummary(
            id=self.id,
            email=self.email,
            name=self.name,
            image=self.image,
            role=self.role,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def referral_expired(self, now: datetime) -> bool:
        return self.referral_expires_at is not None and self.referral_expires_at <= now


@dataclass(frozen=True)
class Identity:
    """Snapshot of an authenticated account produced by a successful login."""

    id: int
    email: str
    role: Role
    status: AccountStatus
    name: Optional[str] = None
    image: Optional[str] = None
    referral_code: Optional[str] = None
    referral_expires_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: AccountWithSecrets) -> "Identity":
        return cls(
            id=account.id,
            email=account.email,
            role=account.role,
            status=account.status,
            name=account.name,
            image=account.image,
            referral_code=account.referral_code,
            referral_expires_at=account.referral_expires_at,
        )


@dataclass(frozen=True)
class ReferralCodeRecord:
    """A referral code issued when an administrator approves an account."""

    id: int
    code: str
    issued_by: int
    account_id: int
    expires_at: Optional[datetime]
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class Company:
    id: int
    name: str
    description: Optional[str]
    industry: Optional[str]
    website: Optional[str]
    logo_url: Optional[str]
    registered_by: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class JobPost:
    """A job listing owned by the account that posted it."""

    id: int
    title: str
    description: str
    company: Company
    posted_by: int
    location: str
    job_type: str
    experience_level: str
    salary_range: Optional[str]
    skills_required: List[str] = field(default_factory=list)
    application_deadline: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Applicant:
    account_id: int
    name: Optional[str]
    email: str
    applied_at: datetime


__all__ = [
    "AccountStatus",
    "AccountSummary",
    "AccountWithSecrets",
    "Applicant",
    "Company",
    "EXPERIENCE_LEVELS",
    "Identity",
    "JOB_TYPES",
    "JobPost",
    "ReferralCodeRecord",
    "Role",
    "SELF_REGISTERABLE_ROLES",
]
