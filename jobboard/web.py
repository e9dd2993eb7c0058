"""Server-rendered pages: login, registration, approvals and job search."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import parse_qs, urlencode

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from .errors import JobBoardError
from .gate import DenyReason
from .models import (
    EXPERIENCE_LEVELS,
    JOB_TYPES,
    SELF_REGISTERABLE_ROLES,
    AccountStatus,
    Role,
)
from .postings import JobSearch
from .sessions import SESSION_COOKIE_NAME

logger = logging.getLogger("jobboard.web")

_STATUS_MESSAGES = {
    AccountStatus.PENDING.value: "Your account is pending administrator approval.",
    AccountStatus.REJECTED.value: "Your account has been rejected. Please contact support.",
}


def _template_environment() -> Jinja2Templates:
    base_dir = Path(__file__).resolve().parent
    return Jinja2Templates(directory=str(base_dir / "templates"))


def _format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%d %b %Y %H:%M %Z")


def login_banner(error: Optional[str], account_status: Optional[str]) -> Optional[str]:
    """Translate the query parameters the gate appends into a banner message."""

    if not error:
        return None
    if error == DenyReason.ACCESS_DENIED.value:
        return _STATUS_MESSAGES.get(account_status or "", "Your account is not approved.")
    if error == DenyReason.REFERRAL_EXPIRED.value:
        return "Your referral code has expired. Please contact an administrator for a new one."
    return "Please sign in to continue."


async def _parse_form(request: Request) -> Dict[str, str]:
    body_bytes = await request.body()
    content_type = request.headers.get("content-type", "")
    charset = "utf-8"
    if "charset=" in content_type:
        charset = content_type.split("charset=", 1)[1].split(";", 1)[0].strip() or "utf-8"
    try:
        decoded = body_bytes.decode(charset)
    except (LookupError, UnicodeDecodeError):
        decoded = body_bytes.decode("utf-8", errors="ignore")
    data = parse_qs(decoded, keep_blank_values=True)
    return {key: values[0] for key, values in data.items() if values}


def register_ui_routes(app: FastAPI) -> None:
    """Expose the HTML pages on the provided FastAPI app."""

    templates = _template_environment()
    router = APIRouter(include_in_schema=False)

    def _render(
        request: Request,
        name: str,
        *,
        status_code: int = status.HTTP_200_OK,
        **extra: object,
    ) -> HTMLResponse:
        context = {
            "user": getattr(request.state, "account", None),
            "format_datetime": _format_datetime,
            "site_name": "Udyog Jagat",
        }
        context.update(extra)
        return templates.TemplateResponse(request, name, context, status_code=status_code)

    def _render_login(
        request: Request,
        *,
        email: str = "",
        error: Optional[str] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> HTMLResponse:
        return _render(request, "login.html", email=email, error=error, status_code=status_code)

    @router.get("/login", response_class=HTMLResponse, name="ui_login")
    async def login_form(request: Request):
        error = login_banner(
            request.query_params.get("error"),
            request.query_params.get("status"),
        )
        return _render_login(request, error=error)

    @router.post("/login", name="ui_login_submit")
    async def login_submit(request: Request):
        services = request.app.state.services
        form = await _parse_form(request)
        email = form.get("email", "").strip()
        password = form.get("password") or None
        referral_code = form.get("referralCode") or None

        try:
            identity = await run_in_threadpool(
                services.authenticator.authenticate,
                email,
                password=password,
                referral_code=referral_code,
            )
        except JobBoardError as exc:
            return _render_login(
                request,
                email=email,
                error=exc.user_message,
                status_code=exc.http_status,
            )

        session = services.sessions.issue(identity)
        logger.info("Account %s signed in to the web interface", identity.id)
        response = RedirectResponse(
            "/admin/users" if identity.role is Role.ADMINISTRATOR else "/",
            status_code=status.HTTP_303_SEE_OTHER,
        )
        response.set_cookie(
            SESSION_COOKIE_NAME,
            session.token,
            max_age=services.sessions.cookie_max_age,
            secure=services.settings.secure_cookies,
            httponly=True,
            samesite="lax",
            path="/",
        )
        return response

    @router.get("/logout", name="ui_logout")
    async def logout(request: Request):
        response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return response

    @router.get("/register", response_class=HTMLResponse, name="ui_register")
    async def register_form(request: Request):
        return _render(
            request,
            "register.html",
            roles=[role.value for role in SELF_REGISTERABLE_ROLES],
            form={},
        )

    @router.post("/register", name="ui_register_submit")
    async def register_submit(request: Request):
        services = request.app.state.services
        form = await _parse_form(request)
        roles = [role.value for role in SELF_REGISTERABLE_ROLES]
        try:
            await run_in_threadpool(
                lambda: services.accounts.register(
                    name=form.get("name"),
                    email=form.get("email"),
                    role=form.get("role"),
                )
            )
        except JobBoardError as exc:
            return _render(
                request,
                "register.html",
                roles=roles,
                form=form,
                error=exc.message,
                status_code=exc.http_status,
            )
        return _render(
            request,
            "register.html",
            roles=roles,
            form={},
            notice="Registration request submitted successfully. Please wait for admin approval.",
        )

    @router.get("/", response_class=HTMLResponse, name="ui_home")
    async def homepage(request: Request):
        return _render(request, "home.html")

    @router.get("/profile", response_class=HTMLResponse, name="ui_profile")
    async def profile(request: Request):
        services = request.app.state.services
        account = request.state.account
        codes = []
        if account.role is not Role.ADMINISTRATOR:
            codes = await run_in_threadpool(services.database.list_referral_codes, account.id)
        return _render(request, "profile.html", referral_codes=codes)

    @router.get("/admin/users", response_class=HTMLResponse, name="ui_admin_users")
    async def admin_users(request: Request):
        services = request.app.state.services
        raw_status = request.query_params.get("status", AccountStatus.PENDING.value)
        try:
            wanted = AccountStatus.parse(raw_status)
        except ValueError:
            wanted = AccountStatus.PENDING
        accounts = await run_in_threadpool(services.database.list_accounts, wanted)
        return _render(
            request,
            "admin_users.html",
            accounts=accounts,
            selected_status=wanted.value,
            statuses=[item.value for item in AccountStatus],
            notice=request.query_params.get("notice"),
            error=request.query_params.get("error"),
        )

    @router.post("/admin/users/{account_id}/{action}", name="ui_admin_user_action")
    async def admin_user_action(account_id: int, action: str, request: Request) -> Response:
        services = request.app.state.services
        admin = request.state.account
        query: Dict[str, str] = {}
        try:
            if action == "approve":
                await run_in_threadpool(services.issuer.approve, account_id, admin.id)
                query["notice"] = "User approved and referral code sent"
            elif action == "reject":
                await run_in_threadpool(services.issuer.reject, account_id, admin.id)
                query["notice"] = "User rejected"
            else:
                query["error"] = "Unknown action"
        except JobBoardError as exc:
            query["error"] = exc.message
        return RedirectResponse(
            f"/admin/users?{urlencode(query)}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    @router.get("/jobs/find", response_class=HTMLResponse, name="ui_jobs_find")
    async def jobs_find(request: Request):
        services = request.app.state.services
        params = request.query_params
        criteria = JobSearch(
            keyword=params.get("keyword", "").strip() or None,
            location=params.get("location", "").strip() or None,
            job_type=params.get("jobType") or None,
            experience_level=params.get("experienceLevel") or None,
            company_name=params.get("companyName") or None,
        )
        jobs = await run_in_threadpool(services.jobs.search, criteria)
        return _render(
            request,
            "jobs_find.html",
            jobs=jobs,
            criteria=criteria,
            job_types=JOB_TYPES,
            experience_levels=EXPERIENCE_LEVELS,
        )

    app.include_router(router)


__all__ = ["login_banner", "register_ui_routes"]
