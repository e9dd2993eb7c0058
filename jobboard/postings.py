"""Job posting operations layered on the store.

Role checks are the gate's job. This module only enforces ownership: a
Job Poster may change or inspect applicants of their own postings, an
Administrator may moderate every posting.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from .database import Database
from .errors import NotFound, Unauthorized, ValidationFailed
from .models import EXPERIENCE_LEVELS, JOB_TYPES, AccountSummary, Applicant, JobPost, Role

logger = logging.getLogger("jobboard.postings")


@dataclass
class JobPostDraft:
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    experience_level: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    salary_range: Optional[str] = None
    skills_required: Sequence[str] = field(default_factory=list)
    application_deadline: Optional[datetime] = None
    is_active: Optional[bool] = None


@dataclass(frozen=True)
class JobSearch:
    keyword: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    experience_level: Optional[str] = None
    company_name: Optional[str] = None
    sort_by: str = "createdAt"
    ascending: bool = False


def _validate_enums(job_type: Optional[str], experience_level: Optional[str]) -> None:
    if job_type is not None and job_type not in JOB_TYPES:
        raise ValidationFailed(f"Invalid job type '{job_type}'")
    if experience_level is not None and experience_level not in EXPERIENCE_LEVELS:
        raise ValidationFailed(f"Invalid experience level '{experience_level}'")


class JobBoard:
    def __init__(self, database: Database) -> None:
        self._database = database

    def _require_job(self, job_id: int) -> JobPost:
        job = self._database.get_job_post(job_id)
        if job is None:
            raise NotFound("Job post not found")
        return job

    def _require_owner(self, job: JobPost, actor: AccountSummary) -> None:
        if actor.role is Role.ADMINISTRATOR:
            return
        if job.posted_by != actor.id:
            logger.warning("Account %s tried to modify job %s owned by %s", actor.id, job.id, job.posted_by)
            raise Unauthorized("Forbidden: You can only manage your own job posts")

    def search(self, criteria: JobSearch) -> List[JobPost]:
        # Unknown enum filters are ignored rather than rejected.
        job_type = criteria.job_type if criteria.job_type in JOB_TYPES else None
        level = criteria.experience_level if criteria.experience_level in EXPERIENCE_LEVELS else None
        return self._database.search_job_posts(
            keyword=criteria.keyword or None,
            location=criteria.location or None,
            job_type=job_type,
            experience_level=level,
            company_name=criteria.company_name or None,
            sort_by=criteria.sort_by,
            ascending=criteria.ascending,
        )

    def get(self, job_id: int) -> JobPost:
        return self._require_job(job_id)

    def create(self, draft: JobPostDraft, actor: AccountSummary) -> JobPost:
        required = (draft.title, draft.description, draft.location, draft.job_type, draft.experience_level)
        if not all(value and str(value).strip() for value in required):
            raise ValidationFailed("Missing required fields")
        if draft.company_id is None and not (draft.company_name and draft.company_name.strip()):
            raise ValidationFailed("Either companyId or companyName is required")
        _validate_enums(draft.job_type, draft.experience_level)

        if draft.company_id is not None:
            company = self._database.get_company(draft.company_id)
            if company is None:
                raise NotFound("Company not found")
        else:
            company = self._database.find_or_create_company(
                draft.company_name or "", registered_by=actor.id
            )

        job = self._database.create_job_post(
            title=draft.title or "",
            description=draft.description or "",
            company_id=company.id,
            posted_by=actor.id,
            location=draft.location or "",
            job_type=draft.job_type or "",
            experience_level=draft.experience_level or "",
            salary_range=draft.salary_range,
            skills_required=list(draft.skills_required or []),
            application_deadline=draft.application_deadline,
        )
        logger.info("Account %s posted job %s (%s)", actor.id, job.id, job.title)
        return job

    def update(self, job_id: int, changes: JobPostDraft, actor: AccountSummary, *, fields: Sequence[str]) -> JobPost:
        """Apply the attributes named in ``fields`` from ``changes``."""

        job = self._require_job(job_id)
        self._require_owner(job, actor)
        _validate_enums(
            changes.job_type if "job_type" in fields else None,
            changes.experience_level if "experience_level" in fields else None,
        )

        updates = {name: getattr(changes, name) for name in fields if name not in {"company_id", "company_name"}}
        if "company_id" in fields and changes.company_id is not None:
            if self._database.get_company(changes.company_id) is None:
                raise NotFound("Company not found")
            updates["company_id"] = changes.company_id
        elif "company_name" in fields and changes.company_name:
            company = self._database.find_or_create_company(changes.company_name, registered_by=actor.id)
            updates["company_id"] = company.id

        for name in ("title", "description", "location"):
            if name in updates and not (updates[name] and str(updates[name]).strip()):
                raise ValidationFailed(f"{name} must not be empty")

        updated = self._database.update_job_post(job_id, **updates)
        if updated is None:
            raise NotFound("Job post not found")
        return updated

    def deactivate(self, job_id: int, actor: AccountSummary) -> JobPost:
        job = self._require_job(job_id)
        self._require_owner(job, actor)
        updated = self._database.update_job_post(job_id, is_active=False)
        if updated is None:
            raise NotFound("Job post not found")
        logger.info("Account %s deactivated job %s", actor.id, job_id)
        return updated

    def apply(self, job_id: int, actor: AccountSummary) -> None:
        job = self._require_job(job_id)
        if not job.is_active:
            raise ValidationFailed("This job is no longer accepting applications")
        self._database.apply_to_job(job_id, actor.id)
        logger.info("Account %s applied to job %s", actor.id, job_id)

    def has_applied(self, job_id: int, actor: AccountSummary) -> bool:
        return self._database.has_applied(job_id, actor.id)

    def applicants(self, job_id: int, actor: AccountSummary) -> List[Applicant]:
        job = self._require_job(job_id)
        if actor.role is not Role.ADMINISTRATOR and job.posted_by != actor.id:
            raise Unauthorized("Forbidden: You can only view applicants for your own job posts")
        return self._database.list_applicants(job_id)

    def posted_by(self, actor: AccountSummary) -> List[JobPost]:
        if actor.role is Role.ADMINISTRATOR:
            return self._database.list_job_posts()
        return self._database.list_job_posts(posted_by=actor.id)


__all__ = ["JobBoard", "JobPostDraft", "JobSearch"]
