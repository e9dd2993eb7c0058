"""JSON API for registration, login, approvals and job postings."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationFailed
from .models import (
    AccountStatus,
    AccountSummary,
    Applicant,
    Company,
    JobPost,
    ReferralCodeRecord,
)
from .postings import JobPostDraft, JobSearch
from .sessions import SESSION_COOKIE_NAME, SignedSession

logger = logging.getLogger("jobboard.api")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=512)
    role: Optional[str] = Field(default=None, max_length=64)


class LoginRequest(_CamelModel):
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=512)
    referral_code: Optional[str] = Field(default=None, alias="referralCode", max_length=128)


class ApprovalRequest(_CamelModel):
    user_id: int = Field(..., alias="userId")
    action: str = Field(..., max_length=16)


class ProfileUpdateRequest(_CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    image: Optional[str] = Field(default=None, max_length=2048)


class JobPostRequest(_CamelModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    company_id: Optional[int] = Field(default=None, alias="companyId")
    company_name: Optional[str] = Field(default=None, alias="companyName", max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    job_type: Optional[str] = Field(default=None, alias="jobType")
    experience_level: Optional[str] = Field(default=None, alias="experienceLevel")
    salary_range: Optional[str] = Field(default=None, alias="salaryRange", max_length=200)
    skills_required: List[str] = Field(default_factory=list, alias="skillsRequired")
    application_deadline: Optional[datetime] = Field(default=None, alias="applicationDeadline")
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    @field_validator("skills_required", mode="before")
    @classmethod
    def _split_skills(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    def to_draft(self) -> JobPostDraft:
        return JobPostDraft(
            title=self.title,
            description=self.description,
            location=self.location,
            job_type=self.job_type,
            experience_level=self.experience_level,
            company_id=self.company_id,
            company_name=self.company_name,
            salary_range=self.salary_range,
            skills_required=self.skills_required,
            application_deadline=self.application_deadline,
            is_active=self.is_active,
        )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def account_to_view(account: AccountSummary) -> Dict[str, Any]:
    return {
        "id": account.id,
        "email": account.email,
        "name": account.name,
        "image": account.image,
        "role": account.role.value,
        "status": account.status.value,
        "createdAt": _iso(account.created_at),
        "updatedAt": _iso(account.updated_at),
    }


def company_to_view(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "description": company.description,
        "industry": company.industry,
        "website": company.website,
        "logoUrl": company.logo_url,
    }


def job_to_view(job: JobPost) -> Dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "description": job.description,
        "company": company_to_view(job.company),
        "postedBy": job.posted_by,
        "location": job.location,
        "jobType": job.job_type,
        "experienceLevel": job.experience_level,
        "salaryRange": job.salary_range,
        "skillsRequired": list(job.skills_required),
        "applicationDeadline": _iso(job.application_deadline),
        "isActive": job.is_active,
        "createdAt": _iso(job.created_at),
        "updatedAt": _iso(job.updated_at),
    }


def applicant_to_view(applicant: Applicant) -> Dict[str, Any]:
    return {
        "id": applicant.account_id,
        "name": applicant.name,
        "email": applicant.email,
        "appliedAt": _iso(applicant.applied_at),
    }


def referral_code_to_view(record: ReferralCodeRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "code": record.code,
        "issuedBy": record.issued_by,
        "accountId": record.account_id,
        "expiresAt": _iso(record.expires_at),
        "active": record.active,
        "createdAt": _iso(record.created_at),
    }


def session_to_view(session: SignedSession) -> Dict[str, Any]:
    claims = session.claims
    return {
        "token": session.token,
        "expiresAt": _iso(claims.expires_at),
        "user": {
            "id": claims.account_id,
            "email": claims.email,
            "role": claims.role.value,
            "status": claims.status.value,
            "name": claims.name,
            "image": claims.image,
        },
    }


def current_account(request: Request) -> AccountSummary:
    """Return the caller the gate admitted. Routes without a session get 401."""

    account = getattr(request.state, "account", None)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return account


def set_session_cookie(response: Response, request: Request, session: SignedSession) -> None:
    services = request.app.state.services
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session.token,
        max_age=services.sessions.cookie_max_age,
        httponly=True,
        secure=services.settings.secure_cookies,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME)


def register_api_routes(app: FastAPI) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    router = APIRouter(prefix="/api")

    def services(request: Request):
        return request.app.state.services

    @router.post("/register", status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, svc=Depends(services)) -> Dict[str, Any]:
        account = svc.accounts.register(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            password=payload.password,
        )
        return {
            "message": "Registration request submitted successfully. Please wait for admin approval.",
            "user": account_to_view(account),
        }

    @router.post("/login")
    def login(
        payload: LoginRequest,
        request: Request,
        response: Response,
        svc=Depends(services),
    ) -> Dict[str, Any]:
        identity = svc.authenticator.authenticate(
            payload.email,
            password=payload.password,
            referral_code=payload.referral_code,
        )
        session = svc.sessions.issue(identity)
        set_session_cookie(response, request, session)
        logger.info("Account %s signed in through the API", identity.id)
        return session_to_view(session)

    @router.post("/logout")
    def logout(response: Response) -> Dict[str, str]:
        clear_session_cookie(response)
        return {"message": "Logged out"}

    @router.get("/admin/users")
    def list_users(
        status_filter: str = Query(default="Pending", alias="status"),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        try:
            wanted = AccountStatus.parse(status_filter)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return {"users": [account_to_view(account) for account in svc.database.list_accounts(wanted)]}

    @router.put("/admin/users")
    def update_user_status(
        payload: ApprovalRequest,
        admin: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        action = payload.action.strip().lower()
        if action not in {"approve", "reject"}:
            raise ValidationFailed("Invalid action")
        if action == "approve":
            record = svc.issuer.approve(payload.user_id, admin.id)
            account = svc.accounts.profile(payload.user_id)
            return {
                "message": "User approved and referral code sent",
                "user": account_to_view(account),
                "referralExpiresAt": _iso(record.expires_at),
            }

        account = svc.issuer.reject(payload.user_id, admin.id)
        return {"message": "User rejected", "user": account_to_view(account)}

    @router.get("/admin/users/{account_id}/referral-codes")
    def list_referral_codes(account_id: int, svc=Depends(services)) -> Dict[str, Any]:
        svc.accounts.profile(account_id)
        return {"codes": [referral_code_to_view(record) for record in svc.database.list_referral_codes(account_id)]}

    @router.get("/profile")
    def get_profile(
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        return {"user": account_to_view(svc.accounts.profile(account.id))}

    @router.put("/profile")
    def update_profile(
        payload: ProfileUpdateRequest,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        updated = svc.accounts.update_profile(account.id, name=payload.name, image=payload.image)
        return {"message": "Profile updated successfully", "user": account_to_view(updated)}

    @router.get("/companies")
    def list_companies(svc=Depends(services)) -> Dict[str, Any]:
        return {"companies": [company_to_view(company) for company in svc.database.list_companies()]}

    @router.get("/jobs")
    def search_jobs(
        keyword: str = "",
        location: str = "",
        job_type: Optional[str] = Query(default=None, alias="jobType"),
        experience_level: Optional[str] = Query(default=None, alias="experienceLevel"),
        company_name: Optional[str] = Query(default=None, alias="companyName"),
        sort_by: str = Query(default="createdAt", alias="sortBy"),
        order: str = "desc",
        svc=Depends(services),
    ) -> Dict[str, Any]:
        criteria = JobSearch(
            keyword=keyword.strip() or None,
            location=location.strip() or None,
            job_type=job_type,
            experience_level=experience_level,
            company_name=company_name,
            sort_by=sort_by,
            ascending=order == "asc",
        )
        return {"jobPosts": [job_to_view(job) for job in svc.jobs.search(criteria)]}

    @router.post("/jobs", status_code=status.HTTP_201_CREATED)
    def create_job(
        payload: JobPostRequest,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        job = svc.jobs.create(payload.to_draft(), account)
        return {"message": "Job posted successfully", "jobPost": job_to_view(job)}

    @router.get("/jobs/posted-by-user")
    def jobs_posted_by_user(
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        return {"jobPosts": [job_to_view(job) for job in svc.jobs.posted_by(account)]}

    @router.get("/jobs/{job_id}")
    def get_job(
        job_id: int,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        job = svc.jobs.get(job_id)
        view = job_to_view(job)
        view["hasApplied"] = svc.jobs.has_applied(job_id, account)
        return view

    @router.put("/jobs/{job_id}")
    def update_job(
        job_id: int,
        payload: JobPostRequest,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        job = svc.jobs.update(job_id, payload.to_draft(), account, fields=sorted(payload.model_fields_set))
        return {"message": "Job updated successfully", "jobPost": job_to_view(job)}

    @router.delete("/jobs/{job_id}")
    def delete_job(
        job_id: int,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        job = svc.jobs.deactivate(job_id, account)
        return {"message": "Job post deactivated", "jobPost": job_to_view(job)}

    @router.post("/jobs/{job_id}/apply")
    def apply_to_job(
        job_id: int,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, str]:
        svc.jobs.apply(job_id, account)
        return {"message": "Application submitted successfully"}

    @router.get("/jobs/{job_id}/applicants")
    def list_applicants(
        job_id: int,
        account: AccountSummary = Depends(current_account),
        svc=Depends(services),
    ) -> Dict[str, Any]:
        return {"applicants": [applicant_to_view(item) for item in svc.jobs.applicants(job_id, account)]}

    app.include_router(router)


__all__ = [
    "account_to_view",
    "clear_session_cookie",
    "current_account",
    "job_to_view",
    "register_api_routes",
    "set_session_cookie",
]
